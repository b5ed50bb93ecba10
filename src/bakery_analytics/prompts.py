"""Prompt templates."""

SYSTEM_PROMPT = (
    "Eres un consultor experto en análisis de clientes para panaderías. "
    "Entiendes patrones de pedidos, preferencias de productos, problemas "
    "operacionales y comportamiento de clientes. Responde SOLO con JSON válido."
)


ENRICH_PROMPT = """Analiza este cliente de panadería:

CLIENTE: {name}
MÉTRICAS:
- Pedidos: {total_orders} | Gastado: ${total_spent:,.0f} | Promedio: ${avg_order_value:,.0f}
- Frecuencia: {order_frequency:.1f}/semana | Respuesta: {response_time_hours:.1f}h
- Problemas de pago: {payment_issues} | Quejas: {complaints} | Elogios: {compliments}
- Dificultad: {difficulty_score} | Patrones: {patterns}
- Productos preferidos: {preferred}
- Exclusiones: {exclusions}
- Pedidos generales/específicos: {general_orders}/{specific_orders} | Cambios: {total_changes}
- Destinos: {destinations}

MENSAJES RECIENTES:
{recent_messages}

PEDIDOS RECIENTES:
{recent_orders}

Return JSON with exactly these keys:
- insights: list of 2-3 strings
- recommendations: list of 1-3 strings
- risk_level: "low" | "medium" | "high"
- behavior_profile: one line
- communication_style: one line
- business_value: one line
- predicted_actions: list of strings
- satisfaction_analysis: one line
- customer_profile: 1-2 lines
- key_preferences: list of product names
- key_exclusions: list of rejected products
- next_best_action: one concrete action for the next contact
- significant_events: list from NEW_CLIENT, FREQUENT_CLIENT, PENDING_PAYMENT,
  QUALITY_COMPLAINT, HIGH_SATISFACTION, DELIVERY_PROBLEM, SPECIAL_REQUEST, CHURN_RISK

Write the text values in Spanish. Return ONLY valid JSON."""

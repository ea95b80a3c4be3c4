# /jewelbot/utils/metrics.py

from prometheus_client import Counter, Histogram, Gauge

# This file defines all Prometheus metrics used for application monitoring.
# Centralizing them here makes them easy to find and manage.

# Business Logic Metrics
message_counter = Counter('whatsapp_messages_total', 'Total inbound messages processed', ['status', 'message_type'])
turn_counter = Counter('dialogue_turns_total', 'Dialogue turns by resolution path', ['path'])
response_time_histogram = Histogram('response_time_seconds', 'Response time in seconds', ['endpoint'])
ai_requests_counter = Counter('ai_requests_total', 'Total AI requests', ['model', 'status'])
outbound_messages_counter = Counter('whatsapp_outbound_messages_total', 'Outbound WhatsApp messages', ['message_type', 'status'])

# State Metrics
catalog_size_gauge = Gauge('catalog_products', 'Number of products loaded from the catalog')
active_conversations_gauge = Gauge('active_conversations', 'Number of conversations held in memory')

"""wellspring.integrations — External service gateway modules.

All outbound HTTP calls to third-party APIs go through a gateway in this
package, never via bare `requests` calls in services or blueprints.

Every call is:
  - Authenticated (token injected by the gateway)
  - Attempted exactly once (no retry, no queue; the caller logs the outcome)
  - Bounded by the configured timeout
  - Returned as a structured result, never raised

Current gateways:
  monday_gateway.MondayGateway — Monday.com GraphQL API (board comments)
  gmail_gateway.GmailGateway   — Gmail REST API (draft creation)
"""

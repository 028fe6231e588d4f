"""
Services layer - Business logic goes here.
Keep services focused on specific domains (accounts, issues, assignments, etc.)

DESIGN PRINCIPLE:
- Services contain business logic, NOT routes
- Services raise civic_api.core.errors exceptions; routes never build error responses
- Each service is reachable through a get_*_service() singleton
"""

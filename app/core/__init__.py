"""
Core - shared infrastructure for the marketplace apps.

Models (core.models):
    - BaseModel: Abstract model with created_at/updated_at

Model Mixins (core.model_mixins):
    - UUIDPrimaryKeyMixin: UUID primary key

Services (core.services):
    - ResultKind: success / invalid_input / forbidden / not_found /
      conflict / internal_error
    - ServiceResult: Result wrapper returned by every service operation
    - BaseService: Logger and transaction helpers

Exceptions (core.exceptions):
    - BaseApplicationError and its ValidationError,
      PermissionDeniedError, ConflictError, ExternalServiceError subclasses

API plumbing:
    - core.exception_handler.api_exception_handler: DRF exception handler
    - core.views.health_check: /health/ check
    - core.helpers.get_client_ip
"""

from app.schemas.consultation import (  # noqa: F401
    ConsultationEntryResponse,
    ConsultationRequest,
    ConsultationResponse,
    WebhookAck,
)
from app.schemas.batch import BatchAccepted, BatchItemResult, BatchResponse  # noqa: F401
from app.schemas.user import (  # noqa: F401
    RoleResponse,
    RoleUpdate,
    RoleUpdated,
    UserCreate,
    UserCreated,
    UserResponse,
)

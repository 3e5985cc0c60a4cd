from app.models.batch import BatchModel, BatchStatus  # noqa: F401
from app.models.profile import ProfileModel  # noqa: F401

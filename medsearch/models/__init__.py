# Import every model so relationships resolve and create_all() sees all tables
from medsearch.models import (  # noqa: F401
    appointment_models,
    review_models,
    specialty_models,
    system_models,
    user_models,
)

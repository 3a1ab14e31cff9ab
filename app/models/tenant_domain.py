# app/models/tenant_domain.py
from app.models.organization import Organization
from app.models.patient import Patient
from app.models.queue_item import QueueItem
from app.models.triage import Triage
from app.models.user import User
from app.models.visit import Visit
from app.models.visit_counter import VisitCounter

# Order matters: tables with no dependencies first, then tables that depend on them
# - User, Patient, VisitCounter depend on Organization
# - Visit depends on Patient
# - QueueItem depends on Visit and User (assigned doctor)
# - Triage depends on Visit
TENANT_TABLES = [
    Organization.__table__,
    User.__table__,
    Patient.__table__,
    VisitCounter.__table__,
    Visit.__table__,
    QueueItem.__table__,
    Triage.__table__,
]

# import all models for Alembic
from ventory_imports.db.models.import_job import ImportJob, ImportKind, JobStatus
from ventory_imports.db.models.import_record import ImportRecord
from ventory_imports.db.models.category import Category
from ventory_imports.db.models.product import Product
from ventory_imports.db.models.user import User, UserRole, Role
from ventory_imports.db.models.profile import Profile

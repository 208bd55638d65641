from ventory_imports.crud.catalog import list_categories
from ventory_imports.crud.users import get_user_by_email
from ventory_imports.core.config import settings
from ventory_imports.services.seed import DEFAULT_CATEGORIES, seed_demo

def test_seed_creates_admin_and_categories_once(db, session_factory):
    seed_demo(session_factory)
    seed_demo(session_factory)
    admin = get_user_by_email(db, settings.DEMO_ADMIN_EMAIL)
    assert admin is not None
    assert admin.role_names == {"admin"}
    assert sorted(c.name for c in list_categories(db)) == sorted(DEFAULT_CATEGORIES)

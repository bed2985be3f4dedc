from typing import List

from dotask.core.errors import InvalidInput
from dotask.core.session import RequestIdentity
from dotask.schemas.category import CategoryRecord
from dotask.services.auth_service import require_auth
from dotask.store.base import Store


def _clean_name(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise InvalidInput("category name is required")
    return name


def list_categories(store: Store, identity: RequestIdentity) -> List[CategoryRecord]:
    return store.list_categories(require_auth(identity))


def get_category(store: Store, identity: RequestIdentity, category_id: str) -> CategoryRecord:
    return store.get_category(category_id, require_auth(identity))


def create_category(store: Store, identity: RequestIdentity, name: str) -> CategoryRecord:
    user_id = require_auth(identity)
    return store.create_category(_clean_name(name), user_id)


def update_category(store: Store, identity: RequestIdentity, category_id: str, name: str) -> CategoryRecord:
    user_id = require_auth(identity)
    return store.update_category(category_id, _clean_name(name), user_id)


def delete_category(store: Store, identity: RequestIdentity, category_id: str) -> bool:
    store.delete_category(category_id, require_auth(identity))
    return True

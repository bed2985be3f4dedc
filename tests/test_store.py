"""Store contract tests, run against SqlStore and MemoryStore."""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from dotask.core.errors import AlreadyExists, HasDependents, InvalidInput, NotFound
from dotask.schemas.task import TaskCreate, TaskPriority, TaskStatus, TaskUpdate, changed_fields
from dotask.schemas.user import UserUpdate
from dotask.store.memory import ReadWriteLock

DUE = datetime(2030, 5, 1, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def alice(store):
    return store.create_user("Alice", "alice@example.com", "hash-a")


@pytest.fixture
def bob(store):
    return store.create_user("Bob", "bob@example.com", "hash-b")


@pytest.fixture
def work(store, alice):
    return store.create_category("Work", alice.id)


def new_task(store, owner, category, **kwargs):
    data = TaskCreate(title=kwargs.pop("title", "Write report"), due_date=DUE, category_id=category.id, **kwargs)
    return store.create_task(data, owner.id)


# ========== USERS ==========

def test_create_and_get_user(store, alice):
    assert store.get_user(alice.id).email == "alice@example.com"
    assert store.get_user_by_email("ALICE@example.com").id == alice.id


def test_duplicate_email_rejected(store, alice):
    with pytest.raises(AlreadyExists):
        store.create_user("Other", "alice@example.com", "hash")


def test_unknown_user_not_found(store):
    with pytest.raises(NotFound):
        store.get_user("missing")
    with pytest.raises(NotFound):
        store.get_user_by_email("nobody@example.com")


def test_update_user_partial(store, alice):
    updated = store.update_user(alice.id, UserUpdate(name="Alicia"))
    assert updated.name == "Alicia"
    assert updated.email == "alice@example.com"
    assert updated.password_hash == "hash-a"
    assert updated.updated_at >= alice.updated_at


def test_update_user_email_conflict(store, alice, bob):
    with pytest.raises(AlreadyExists):
        store.update_user(bob.id, UserUpdate(email="alice@example.com"))


def test_set_user_password(store, alice):
    store.set_user_password(alice.id, "new-hash")
    assert store.get_user(alice.id).password_hash == "new-hash"


# ========== CATEGORIES ==========

def test_category_name_unique_per_owner(store, alice, bob, work):
    with pytest.raises(AlreadyExists):
        store.create_category("Work", alice.id)
    # même nom pour un autre user: OK
    assert store.create_category("Work", bob.id).user_id == bob.id


def test_categories_listed_by_name(store, alice):
    for name in ["Personal", "Design", "Marketing"]:
        store.create_category(name, alice.id)
    assert [c.name for c in store.list_categories(alice.id)] == ["Design", "Marketing", "Personal"]


def test_categories_order_is_code_point_order(store, alice):
    # majuscules avant minuscules, identique sur les deux backends
    for name in ["apple", "Banana", "cherry", "Apricot"]:
        store.create_category(name, alice.id)
    assert [c.name for c in store.list_categories(alice.id)] == ["Apricot", "Banana", "apple", "cherry"]



def test_category_of_other_owner_not_found(store, bob, work):
    with pytest.raises(NotFound):
        store.get_category(work.id, bob.id)
    with pytest.raises(NotFound):
        store.update_category(work.id, "Hacked", bob.id)
    with pytest.raises(NotFound):
        store.delete_category(work.id, bob.id)
    assert store.list_categories(bob.id) == []


def test_update_category(store, alice, work):
    renamed = store.update_category(work.id, "Office", alice.id)
    assert renamed.name == "Office"
    assert renamed.created_at == work.created_at


def test_update_category_name_conflict(store, alice, work):
    home = store.create_category("Home", alice.id)
    with pytest.raises(AlreadyExists):
        store.update_category(home.id, "Work", alice.id)


def test_delete_category_blocked_by_tasks(store, alice, work):
    task = new_task(store, alice, work)
    assert store.count_tasks_in_category(work.id, alice.id) == 1
    with pytest.raises(HasDependents):
        store.delete_category(work.id, alice.id)

    store.delete_task(task.id, alice.id)
    store.delete_category(work.id, alice.id)
    with pytest.raises(NotFound):
        store.get_category(work.id, alice.id)


def test_delete_category_after_reassigning_tasks(store, alice, work):
    home = store.create_category("Home", alice.id)
    task = new_task(store, alice, work)
    store.update_task(task.id, TaskUpdate(category_id=home.id), alice.id)
    store.delete_category(work.id, alice.id)
    assert [c.name for c in store.list_categories(alice.id)] == ["Home"]


def test_delete_missing_category(store, alice):
    with pytest.raises(NotFound):
        store.delete_category("missing", alice.id)


# ========== TASKS ==========

def test_create_task_defaults(store, alice, work):
    task = new_task(store, alice, work, tags=["b", "a"])
    assert task.status == TaskStatus.TODO
    assert task.priority == TaskPriority.MEDIUM
    assert task.description == ""
    assert task.tags == ["b", "a"]
    assert task.due_date == DUE
    assert task.category_id == work.id
    assert store.get_task(task.id, alice.id) == task


def test_create_task_needs_owned_category(store, alice, bob, work):
    with pytest.raises(NotFound):
        new_task(store, bob, work)
    with pytest.raises(InvalidInput):
        store.create_task(TaskCreate(title="x", due_date=DUE), alice.id)


def test_tasks_isolated_by_owner(store, alice, bob, work):
    task = new_task(store, alice, work)
    assert store.list_tasks(bob.id) == []
    with pytest.raises(NotFound):
        store.get_task(task.id, bob.id)
    with pytest.raises(NotFound):
        store.update_task(task.id, TaskUpdate(title="mine"), bob.id)
    with pytest.raises(NotFound):
        store.update_task_status(task.id, TaskStatus.COMPLETED, bob.id)
    with pytest.raises(NotFound):
        store.delete_task(task.id, bob.id)
    assert store.get_task(task.id, alice.id).title == "Write report"


def test_list_tasks_newest_first(store, alice, work):
    first = new_task(store, alice, work, title="first")
    second = new_task(store, alice, work, title="second")
    tasks = store.list_tasks(alice.id)
    assert {t.id for t in tasks} == {first.id, second.id}
    created = [t.created_at for t in tasks]
    assert created == sorted(created, reverse=True)


def test_list_tasks_in_category(store, alice, bob, work):
    home = store.create_category("Home", alice.id)
    task = new_task(store, alice, work)
    new_task(store, alice, home)
    assert [t.id for t in store.list_tasks_in_category(work.id, alice.id)] == [task.id]
    with pytest.raises(NotFound):
        store.list_tasks_in_category(work.id, bob.id)


def test_partial_update_only_touches_given_fields(store, alice, work):
    task = new_task(store, alice, work, description="desc", tags=["x"])
    updated = store.update_task(task.id, TaskUpdate(title="New title"), alice.id)
    assert updated.title == "New title"
    assert updated.description == "desc"
    assert updated.tags == ["x"]
    assert updated.due_date == task.due_date
    assert updated.status == task.status


def test_empty_update_only_moves_updated_at(store, alice, work):
    task = new_task(store, alice, work, tags=["x"])
    updated = store.update_task(task.id, TaskUpdate(), alice.id)
    before = task.model_dump(exclude={"updated_at"})
    after = updated.model_dump(exclude={"updated_at"})
    assert before == after
    assert updated.updated_at >= task.updated_at


def test_update_task_to_foreign_category(store, alice, bob, work):
    task = new_task(store, alice, work)
    other = store.create_category("Bob stuff", bob.id)
    with pytest.raises(NotFound):
        store.update_task(task.id, TaskUpdate(category_id=other.id), alice.id)


def test_update_task_status(store, alice, work):
    task = new_task(store, alice, work)
    updated = store.update_task_status(task.id, TaskStatus.IN_PROGRESS, alice.id)
    assert updated.status == TaskStatus.IN_PROGRESS
    assert updated.title == task.title


def test_update_tags_and_due_date(store, alice, work):
    task = new_task(store, alice, work, tags=["a"])
    later = DUE + timedelta(days=3)
    updated = store.update_task(task.id, TaskUpdate(tags=["c", "b"], due_date=later), alice.id)
    assert updated.tags == ["c", "b"]
    assert updated.due_date == later


def test_delete_task(store, alice, work):
    task = new_task(store, alice, work)
    store.delete_task(task.id, alice.id)
    with pytest.raises(NotFound):
        store.get_task(task.id, alice.id)
    with pytest.raises(NotFound):
        store.delete_task(task.id, alice.id)


# ========== HELPERS ==========

def test_changed_fields_skips_unset_and_none():
    update = TaskUpdate(title="t", description=None, tags=[])
    assert changed_fields(update) == [("title", "t"), ("tags", [])]
    assert changed_fields(TaskUpdate()) == []


def test_read_write_lock_excludes_writers():
    lock = ReadWriteLock()
    events = []

    with lock.read():
        writer = threading.Thread(target=lambda: _write(lock, events))
        writer.start()
        writer.join(timeout=0.2)
        # le writer attend tant qu'un lecteur tient le lock
        assert events == []
    writer.join(timeout=2)
    assert events == ["written"]


def _write(lock, events):
    with lock.write():
        events.append("written")


def test_read_write_lock_allows_concurrent_readers():
    lock = ReadWriteLock()
    inside = threading.Barrier(2, timeout=2)

    def reader():
        with lock.read():
            inside.wait()

    threads = [threading.Thread(target=reader) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=3)
    assert not inside.broken

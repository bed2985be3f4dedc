"""GraphQL schema: every field binds to a service call.

User-scoped fields pass ``info.context.identity`` explicitly; the services
raise AuthenticationRequired when it is anonymous. ``register``, ``login``
and ``logout`` are the only ungated fields. Store calls are blocking, so
resolvers hand them to the threadpool and the event loop keeps serving
other requests.
"""

import logging
from typing import List

import strawberry
from starlette.concurrency import run_in_threadpool
from strawberry.extensions import MaskErrors
from strawberry.types import Info

from dotask.core.errors import DoTaskError
from dotask.graphql.types import (
    AuthResponse,
    Category,
    ChangePasswordInput,
    CreateTaskInput,
    LoginInput,
    RegisterInput,
    Task,
    TaskStatus,
    UpdateProfileInput,
    UpdateTaskInput,
    User,
    provided_fields,
)
from dotask.services import auth_service, category_service, task_service

logger = logging.getLogger(__name__)


@strawberry.type
class Query:

    @strawberry.field
    async def tasks(self, info: Info) -> List[Task]:
        ctx = info.context
        records = await run_in_threadpool(task_service.list_tasks, ctx.store, ctx.identity)
        return [Task.from_record(r) for r in records]

    @strawberry.field
    async def task(self, info: Info, id: strawberry.ID) -> Task:
        ctx = info.context
        record = await run_in_threadpool(task_service.get_task, ctx.store, ctx.identity, id)
        return Task.from_record(record)

    @strawberry.field
    async def categories(self, info: Info) -> List[Category]:
        ctx = info.context
        records = await run_in_threadpool(category_service.list_categories, ctx.store, ctx.identity)
        return [Category.from_record(r) for r in records]

    @strawberry.field
    async def category(self, info: Info, id: strawberry.ID) -> Category:
        ctx = info.context
        record = await run_in_threadpool(category_service.get_category, ctx.store, ctx.identity, id)
        return Category.from_record(record)

    @strawberry.field
    async def me(self, info: Info) -> User:
        ctx = info.context
        return User.from_record(await run_in_threadpool(auth_service.me, ctx.store, ctx.identity))


@strawberry.type
class Mutation:

    # Tasks

    @strawberry.mutation
    async def create_task(self, info: Info, input: CreateTaskInput) -> Task:
        ctx = info.context
        record = await run_in_threadpool(
            task_service.create_task, ctx.store, ctx.identity, provided_fields(input)
        )
        return Task.from_record(record)

    @strawberry.mutation
    async def update_task(self, info: Info, id: strawberry.ID, input: UpdateTaskInput) -> Task:
        ctx = info.context
        record = await run_in_threadpool(
            task_service.update_task, ctx.store, ctx.identity, id, provided_fields(input)
        )
        return Task.from_record(record)

    @strawberry.mutation
    async def delete_task(self, info: Info, id: strawberry.ID) -> bool:
        ctx = info.context
        return await run_in_threadpool(task_service.delete_task, ctx.store, ctx.identity, id)

    @strawberry.mutation
    async def update_task_status(self, info: Info, id: strawberry.ID, status: TaskStatus) -> Task:
        ctx = info.context
        record = await run_in_threadpool(task_service.update_task_status, ctx.store, ctx.identity, id, status)
        return Task.from_record(record)

    # Categories

    @strawberry.mutation
    async def create_category(self, info: Info, name: str) -> Category:
        ctx = info.context
        record = await run_in_threadpool(category_service.create_category, ctx.store, ctx.identity, name)
        return Category.from_record(record)

    @strawberry.mutation
    async def update_category(self, info: Info, id: strawberry.ID, name: str) -> Category:
        ctx = info.context
        record = await run_in_threadpool(category_service.update_category, ctx.store, ctx.identity, id, name)
        return Category.from_record(record)

    @strawberry.mutation
    async def delete_category(self, info: Info, id: strawberry.ID) -> bool:
        ctx = info.context
        return await run_in_threadpool(category_service.delete_category, ctx.store, ctx.identity, id)

    # Auth

    @strawberry.mutation
    async def register(self, info: Info, input: RegisterInput) -> AuthResponse:
        ctx = info.context
        user, token = await run_in_threadpool(
            auth_service.register, ctx.store, ctx.credentials, input.name, input.email, input.password
        )
        ctx.set_session_cookie(token)
        return AuthResponse(user=User.from_record(user), token=token)

    @strawberry.mutation
    async def login(self, info: Info, input: LoginInput) -> AuthResponse:
        ctx = info.context
        user, token = await run_in_threadpool(
            auth_service.login, ctx.store, ctx.credentials, input.email, input.password
        )
        ctx.set_session_cookie(token)
        return AuthResponse(user=User.from_record(user), token=token)

    @strawberry.mutation
    def logout(self, info: Info) -> bool:
        info.context.clear_session_cookie()
        return True

    @strawberry.mutation
    async def update_profile(self, info: Info, input: UpdateProfileInput) -> User:
        ctx = info.context
        record = await run_in_threadpool(
            auth_service.update_profile, ctx.store, ctx.identity, provided_fields(input)
        )
        return User.from_record(record)

    @strawberry.mutation
    async def change_password(self, info: Info, input: ChangePasswordInput) -> bool:
        ctx = info.context
        return await run_in_threadpool(
            auth_service.change_password,
            ctx.store, ctx.credentials, ctx.identity, input.current_password, input.new_password,
        )


def _is_unexpected(error) -> bool:
    # erreurs de validation GraphQL (pas d'original_error) et erreurs métier: visibles
    original = getattr(error, "original_error", None)
    return original is not None and not isinstance(original, DoTaskError)


class DoTaskSchema(strawberry.Schema):

    def process_errors(self, errors, execution_context=None) -> None:
        for error in errors:
            if _is_unexpected(error):
                logger.error(f"Unexpected error in {error.path}: {error.original_error!r}",
                             exc_info=error.original_error)
            else:
                logger.debug(f"GraphQL error at {error.path}: {error.message}")


schema = DoTaskSchema(
    query=Query,
    mutation=Mutation,
    extensions=[lambda: MaskErrors(should_mask_error=_is_unexpected)],
)

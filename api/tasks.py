"""Task status and task dependency endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends

from api.base import success_response
from api.dependencies import get_request_context
from core.models import TaskDependencyCreate, TaskStatusUpdate
from utils.request_context import RequestContext


def create_task_router(services: dict) -> APIRouter:
    router = APIRouter(tags=["tasks"])

    task_svc = services["task"]
    dependency_svc = services["task_dependency"]

    @router.patch("/tasks/{task_id}/status")
    async def update_task_status(
        task_id: UUID, body: TaskStatusUpdate, ctx: RequestContext = Depends(get_request_context)
    ):
        task = task_svc.update_status(ctx, task_id, body)
        return success_response(
            task.model_dump(mode="json"), "Task status updated successfully"
        ).model_dump(mode="json")

    @router.get("/tasks/{task_id}/dependencies")
    async def list_task_dependencies(task_id: UUID, ctx: RequestContext = Depends(get_request_context)):
        edges = dependency_svc.list_dependencies(ctx, task_id)
        return success_response(
            [e.model_dump(mode="json") for e in edges]
        ).model_dump(mode="json")

    @router.get("/tasks/{task_id}/dependents")
    async def list_dependent_tasks(task_id: UUID, ctx: RequestContext = Depends(get_request_context)):
        edges = dependency_svc.list_dependents(ctx, task_id)
        return success_response(
            [e.model_dump(mode="json") for e in edges]
        ).model_dump(mode="json")

    @router.post("/task-dependencies", status_code=201)
    async def create_task_dependency(
        body: TaskDependencyCreate, ctx: RequestContext = Depends(get_request_context)
    ):
        dependency = dependency_svc.create(ctx, body)
        return success_response(
            dependency.model_dump(mode="json"), "Task dependency created successfully"
        ).model_dump(mode="json")

    @router.delete("/task-dependencies/{dependency_id}")
    async def remove_task_dependency(dependency_id: UUID, ctx: RequestContext = Depends(get_request_context)):
        dependency = dependency_svc.remove(ctx, dependency_id)
        return success_response(
            {"id": str(dependency.id)}, "Task dependency removed successfully"
        ).model_dump(mode="json")

    return router

from fastapi import APIRouter

from ...routers import tasks as tasks_router


api_router = APIRouter(prefix="/api/v1")

# Endpoints are available at /api/v1/tasks
api_router.include_router(tasks_router.router)


@api_router.get("/", tags=["tasks"])  # lightweight meta endpoint
def api_info():
    return {
        "name": "Task Timer API",
        "version": "v1",
        "docs": "/docs",
        "tasks": "/api/v1/tasks",
        "reorder": {
            "move": "/api/v1/tasks/{id}/reorder",
            "bulk": "/api/v1/tasks/reorder",
        },
    }

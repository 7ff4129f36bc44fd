"""Task API router: create/list/update/delete over the configured store."""

from fastapi import APIRouter, Depends

from taskservice.app.deps import get_task_store
from taskservice.app.schemas import MessageResponse, Task, TaskCreate, TaskUpdate
from taskservice.ports.task_repository import ITaskStore

router = APIRouter(prefix="/tasks")


@router.post("", status_code=201, response_model=Task)
def create_task(payload: TaskCreate, store: ITaskStore = Depends(get_task_store)) -> Task:
    return store.create(payload.model_dump())


@router.get("", response_model=list[Task])
def list_tasks(store: ITaskStore = Depends(get_task_store)) -> list[Task]:
    """Return every task, newest first."""

    return store.list()


@router.put("/{task_id}", response_model=Task)
def update_task(
    task_id: str, payload: TaskUpdate, store: ITaskStore = Depends(get_task_store)
) -> Task:
    # only fields present in the body are merged
    return store.update(task_id, payload.model_dump(exclude_unset=True))


@router.delete("/{task_id}", response_model=MessageResponse)
def delete_task(task_id: str, store: ITaskStore = Depends(get_task_store)) -> MessageResponse:
    store.delete(task_id)
    return MessageResponse(message="Task deleted successfully")

from fastapi import APIRouter

from docgen.services.providers import get_services

router = APIRouter(prefix="/prompts", tags=["prompts"])


@router.get("/library/{useCase}")
def list_prompts(useCase: str):
    prompts = get_services().prompts
    items = prompts.list(useCase)
    active = prompts.get_active(useCase)
    return {
        "success": True,
        "useCase": useCase,
        "activePromptId": active.id,
        "prompts": [p.to_json_dict() for p in items],
    }

from fastapi import APIRouter

router = APIRouter()


@router.api_route("", methods=["GET", "HEAD"])
def health():
    # Check si l'API est up
    return {"status": "healthy", "service": "dotask-api"}

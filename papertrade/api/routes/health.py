from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/ready")
def ready(request: Request):
    quote_cache = getattr(request.app.state, "quote_cache", None)
    return {
        "status": "ready" if quote_cache is not None else "not_ready",
        "cached_quotes": len(quote_cache) if quote_cache is not None else 0,
    }

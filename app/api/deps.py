from fastapi import HTTPException, Request, status

from app.services.scheduling import SchedulingFacade


def get_facade(request: Request) -> SchedulingFacade:
    """The facade built at startup (see app.main.lifespan)."""
    facade = getattr(request.app.state, "scheduling", None)
    if facade is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Scheduling service not initialised",
        )
    return facade

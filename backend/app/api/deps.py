"""FastAPI dependency injection — session access and service error mapping."""
from contextlib import contextmanager

from fastapi import HTTPException, Request, status

from app.services.costing_session import ProjectSession


def get_session(request: Request) -> ProjectSession:
    """The project session owned by this app instance (created in lifespan)."""
    session = getattr(request.app.state, "session", None)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Project session not initialised",
        )
    return session


@contextmanager
def service_errors():
    """
    Map service exceptions onto HTTP errors.

        KeyError, LookupError, IndexError → 404
        ValueError                        → 400
    """
    try:
        yield
    except KeyError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e.args[0]) if e.args else "Not found")
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

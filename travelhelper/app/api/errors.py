"""Translation of domain errors into HTTP errors at the route boundary."""

from collections.abc import Iterator
from contextlib import contextmanager

from fastapi import HTTPException, status

from travelhelper.app.errors import NotAuthenticatedError, NotFoundError


@contextmanager
def store_errors() -> Iterator[None]:
    """Map Session Store failures: NotFound -> 404, NotAuthenticated -> 401."""
    try:
        yield
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except NotAuthenticatedError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

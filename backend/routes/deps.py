"""Shared route dependencies and domain-error to HTTP mapping."""

from __future__ import annotations

import logging
from contextlib import contextmanager

from fastapi import HTTPException, Request, status

from backend.repos.store import DocumentNotFound, DocumentStore, StoreError
from backend.services.gateway import CascadeDeleteError, CrudGateway, WriteError
from engine.hub.validation import ValidationError

logger = logging.getLogger(__name__)


def get_store(request: Request) -> DocumentStore:
    """The store the lifespan handler attached to the app."""
    return request.app.state.store


def get_gateway(request: Request) -> CrudGateway:
    return CrudGateway(get_store(request))


@contextmanager
def http_errors(not_found: str = "Not found."):
    """
    Convert gateway and store failures to HTTPException:

        ValidationError     422
        DocumentNotFound    404
        CascadeDeleteError  502 with counts
        WriteError          502
        StoreError          502
    """
    try:
        yield
    except ValidationError as e:
        raise HTTPException(
            status_code=422,
            detail={"field": e.field, "message": e.message},
        ) from e
    except DocumentNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=not_found) from e
    except CascadeDeleteError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"message": e.message, "deleted": e.deleted, "failed": e.failed},
        ) from e
    except WriteError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message) from e
    except StoreError as e:
        logger.warning("routes: store read failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Could not fetch the latest data. Please try refreshing the page.",
        ) from e

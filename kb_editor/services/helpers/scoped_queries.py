"""
Organization-scoped lookup helpers.

Every get-by-id in the services goes through these helpers instead of
``db.session.get(Model, pk)``. A row owned by another organization is
indistinguishable from a missing one: both raise NotFoundError (HTTP 404).

Usage:
    section = get_scoped(Section, section_id, org_id=org_id)
    group = get_scoped_or_none(PhaseGroup, group_id, org_id=org_id)
"""

import logging

from kb_editor.core.exceptions import NotFoundError

logger = logging.getLogger(__name__)


def get_scoped(model, pk, *, org_id: int):
    """Fetch ``model`` by primary key within ``org_id``.

    Raises:
        ValueError: If ``org_id`` is None or the model is not org-scoped.
        NotFoundError: If the row does not exist or belongs to another org.
    """
    if org_id is None:
        raise ValueError(
            f"{model.__name__} id={pk} requires an org_id scope. "
            "Unscoped lookups are forbidden."
        )
    if not hasattr(model, "org_id"):
        raise ValueError(f"{model.__name__} has no org_id column")

    obj = model.get_for_org(org_id, pk)
    if obj is None:
        logger.debug("Scoped lookup miss", extra={"model": model.__name__, "pk": pk, "org_id": org_id})
        raise NotFoundError(resource=model.__name__, resource_id=pk, org_id=org_id)
    return obj


def get_scoped_or_none(model, pk, *, org_id: int):
    """Like ``get_scoped`` but returns None instead of raising NotFoundError."""
    try:
        return get_scoped(model, pk, org_id=org_id)
    except NotFoundError:
        return None

"""Node template resolution from a stored reference or an inline block."""

from __future__ import annotations

from skynode.api.provider import ObjectStore

from .config import NodeTemplate, deserialize_provider


async def resolve_node_template(
    store: ObjectStore,
    raw: bytes | None,
    ref: str | None,
) -> NodeTemplate:
    """Resolve the template governing an instance.

    Args:
        store: Object store holding named node templates.
        raw: Inline provider JSON, used only when ``ref`` is None.
        ref: Name of a stored node template.

    Returns:
        The stored template, or one wrapping the inline provider with an
        empty name.

    Raises:
        NotFoundError: ``ref`` names no stored template (unmodified).
        DeserializationError: ``raw`` is malformed.
    """
    if ref is not None:
        return await store.get(NodeTemplate, ref)
    return NodeTemplate(provider=deserialize_provider(raw))

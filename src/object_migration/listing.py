"""Translate logical paths into store keys, one page at a time."""

from object_migration.models.contexts import OperationContext
from object_migration.models.datatypes import KeyPage
from object_migration.models.params import ListRequest
from object_migration.protocols import ObjectStore


def build_list_request(context: OperationContext, page_size: int = 300) -> ListRequest:
    """List request for the children of a directory key.

    The trailing slash keeps sibling keys sharing the string prefix
    (``drafts`` vs ``drafts-new``) out of the listing.
    """
    return ListRequest(bucket=context.bucket, prefix=f"{context.key}/", max_keys=page_size)


def synthetic_keys(context: OperationContext) -> tuple[str, str]:
    """The directory's own object and its props sidecar.

    Neither shows up in a listing of the directory's children.
    """
    return context.key, f"{context.key}.props"


async def list_keys(
    store: ObjectStore,
    context: OperationContext,
    continuation_token: str | None = None,
    page_size: int = 300,
) -> KeyPage:
    """Resolve one page of keys the context's path covers.

    A key with an extension is a single object and is returned as is. A
    directory is listed by prefix; the first page (no token) also carries
    the directory's synthetic keys.
    """
    if context.ext:
        return KeyPage(keys=(context.key,))

    request = build_list_request(context, page_size)
    keys: list[str] = []
    if not continuation_token:
        keys.extend(synthetic_keys(context))

    page = await store.list_by_prefix(
        request.bucket, request.prefix, request.max_keys, continuation_token
    )
    keys.extend(page.keys)
    return KeyPage(keys=tuple(keys), continuation_token=page.next_token)


async def drain(
    store: ObjectStore,
    context: OperationContext,
    continuation_token: str,
    page_size: int = 300,
) -> list[str]:
    """Collect the keys of every page from continuation_token to the end."""
    remaining: list[str] = []
    token: str | None = continuation_token
    while token:
        page = await list_keys(store, context, token, page_size)
        remaining.extend(page.keys)
        token = page.continuation_token
    return remaining

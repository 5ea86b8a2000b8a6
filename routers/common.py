from typing import Any, Callable, Dict, Iterable, Optional

from database import serialize_doc
from errors import RecordNotFound
from stores import Page, RecordStore


def get_or_404(store: RecordStore, record_id: int) -> Dict[str, Any]:
    doc = store.find_by_id(record_id)
    if doc is None:
        raise RecordNotFound(store.entity, record_id)
    return doc


def apply_update(store: RecordStore, record_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
    """Write a partial update and return the stored document.

    A document that exists but ends up unchanged is still a success.
    """
    get_or_404(store, record_id)
    result = store.update(record_id, data)
    if result.matched_count == 0:
        raise RecordNotFound(store.entity, record_id)
    return store.find_by_id(record_id, include_inactive=True)


def list_response(message: str, docs: Iterable[Dict[str, Any]],
                  view: Callable = serialize_doc, **extra) -> Dict[str, Any]:
    data = [view(d) for d in docs]
    return {"message": message, "data": data, "total": len(data), **extra}


def page_response(message: str, page: Page, view: Callable = serialize_doc) -> Dict[str, Any]:
    return {
        "message": message,
        "data": [view(d) for d in page.items],
        "pagination": {
            "total": page.total,
            "page": page.page,
            "limit": page.limit,
            "total_pages": page.total_pages,
        },
    }


def item_response(message: str, doc: Optional[Dict[str, Any]], view: Callable = serialize_doc) -> Dict[str, Any]:
    return {"message": message, "data": view(doc)}

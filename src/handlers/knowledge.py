"""
Knowledge base handlers.

GET /help-center is open to any signed-in caller; every /kb route requires
the admin role.
"""

from typing import Optional

from models.identity import Role
from models.knowledge import ActiveToggle, KnowledgeEntryCreate, KnowledgeEntryUpdate
from utils.http import api_endpoint, dump_all, json_response, parse_body, path_param, query_param
from utils.identity import principal_from_event, require_role


def _get_portal():
    """Lazy-load the shared portal."""
    from services.portal import get_portal

    return get_portal()


@api_endpoint
def help_center_handler(event, context):
    """GET /help-center?search=&category="""
    principal_from_event(event)
    category: Optional[str] = query_param(event, "category") or None
    view = _get_portal().knowledge_base.help_center(
        search_text=query_param(event, "search"), category=category
    )
    return json_response(200, view)


@api_endpoint
def list_handler(event, context):
    """GET /kb?search= (admin management view)."""
    require_role(principal_from_event(event), Role.ADMIN)
    entries = _get_portal().knowledge_base.list_all(search_text=query_param(event, "search"))
    return json_response(200, {"entries": dump_all(entries)})


@api_endpoint
def create_handler(event, context):
    """POST /kb"""
    caller = principal_from_event(event)
    payload = KnowledgeEntryCreate.model_validate(parse_body(event))
    entry = _get_portal().knowledge_base.add(
        caller, payload.question, payload.answer, payload.category
    )
    return json_response(201, entry)


@api_endpoint
def update_handler(event, context):
    """PATCH /kb/{id}

    Omitted fields are left unchanged; an explicit ``"category": null``
    clears the category.
    """
    caller = principal_from_event(event)
    payload = KnowledgeEntryUpdate.model_validate(parse_body(event))
    category = payload.category
    if category is None and "category" in payload.model_fields_set:
        category = ""
    entry = _get_portal().knowledge_base.update(
        caller,
        path_param(event, "id"),
        question=payload.question,
        answer=payload.answer,
        category=category,
    )
    return json_response(200, entry)



@api_endpoint
def toggle_handler(event, context):
    """POST /kb/{id}/active"""
    caller = principal_from_event(event)
    payload = ActiveToggle.model_validate(parse_body(event))
    entry_id = path_param(event, "id")
    kb = _get_portal().knowledge_base
    kb.set_active(caller, entry_id, payload.active)
    return json_response(200, kb.get(entry_id))


@api_endpoint
def delete_handler(event, context):
    """DELETE /kb/{id}"""
    caller = principal_from_event(event)
    entry_id = path_param(event, "id")
    _get_portal().knowledge_base.remove(caller, entry_id)
    return json_response(200, {"message": "Knowledge entry removed", "id": entry_id})

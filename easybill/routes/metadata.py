# ==== METADATA ROUTES MODULE ==== #

"""
Tenant metadata definitions: plugins, business rules, invoice templates and
workflows. Reads are open to every tenant user; writes need ROLE_ADMIN.
"""

from typing import List

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from easybill.observability.tracing import get_tracer
from easybill.schemas.metadata import (
    BusinessRuleRequest,
    BusinessRuleResponse,
    InvoiceTemplateRequest,
    InvoiceTemplateResponse,
    PluginRequest,
    PluginResponse,
    RenderRequest,
    RenderResponse,
    RuleExecutionRequest,
    RuleExecutionResponse,
    WorkflowRequest,
    WorkflowResponse,
)
from easybill.security.auth import AuthenticatedUser, get_current_user, require_admin
from easybill.services.metadata import MetadataService
from easybill.storage.db import get_db_session


router = APIRouter()
tracer = get_tracer(__name__)


# ==== PLUGINS ==== #


@router.post("/plugins", response_model=PluginResponse, status_code=201)
async def create_plugin(
    payload: PluginRequest,
    admin: AuthenticatedUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> PluginResponse:
    return PluginResponse.model_validate(await MetadataService(db, admin.tenant_id).create_plugin(payload))


@router.get("/plugins", response_model=List[PluginResponse])
async def list_plugins(
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[PluginResponse]:
    return [PluginResponse.model_validate(p) for p in await MetadataService(db, user.tenant_id).list_plugins()]


@router.get("/plugins/{plugin_id}", response_model=PluginResponse)
async def get_plugin(
    plugin_id: int,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> PluginResponse:
    return PluginResponse.model_validate(await MetadataService(db, user.tenant_id).get_plugin(plugin_id))


@router.put("/plugins/{plugin_id}", response_model=PluginResponse)
async def update_plugin(
    plugin_id: int,
    payload: PluginRequest,
    admin: AuthenticatedUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> PluginResponse:
    return PluginResponse.model_validate(await MetadataService(db, admin.tenant_id).update_plugin(plugin_id, payload))


@router.delete("/plugins/{plugin_id}", status_code=204)
async def delete_plugin(
    plugin_id: int,
    admin: AuthenticatedUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await MetadataService(db, admin.tenant_id).delete_plugin(plugin_id)
    return Response(status_code=204)


# ==== BUSINESS RULES ==== #


@router.post("/rules", response_model=BusinessRuleResponse, status_code=201)
async def create_rule(
    payload: BusinessRuleRequest,
    admin: AuthenticatedUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> BusinessRuleResponse:
    return BusinessRuleResponse.model_validate(await MetadataService(db, admin.tenant_id).create_rule(payload))


@router.get("/rules", response_model=List[BusinessRuleResponse])
async def list_rules(
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[BusinessRuleResponse]:
    return [BusinessRuleResponse.model_validate(r) for r in await MetadataService(db, user.tenant_id).list_rules()]


@router.post("/rules/execute", response_model=RuleExecutionResponse)
async def execute_rules(
    payload: RuleExecutionRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> RuleExecutionResponse:
    """
    Apply the tenant's active rules for an entity event to a payload.

    Args:
        payload (RuleExecutionRequest): Entity type, trigger and data
        user (AuthenticatedUser): Calling user
        db (AsyncSession): Database session dependency

    Returns:
        RuleExecutionResponse: Modified data and the names of applied rules
    """
    with tracer.start_as_current_span("execute_rules_endpoint") as span:
        span.set_attribute("entity_type", payload.entity_type)
        return await MetadataService(db, user.tenant_id).apply_rules(
            payload.entity_type, payload.trigger, payload.data
        )


@router.get("/rules/{rule_id}", response_model=BusinessRuleResponse)
async def get_rule(
    rule_id: int,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> BusinessRuleResponse:
    return BusinessRuleResponse.model_validate(await MetadataService(db, user.tenant_id).get_rule(rule_id))


@router.put("/rules/{rule_id}", response_model=BusinessRuleResponse)
async def update_rule(
    rule_id: int,
    payload: BusinessRuleRequest,
    admin: AuthenticatedUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> BusinessRuleResponse:
    rule = await MetadataService(db, admin.tenant_id).update_rule(rule_id, payload)
    return BusinessRuleResponse.model_validate(rule)


@router.delete("/rules/{rule_id}", status_code=204)
async def delete_rule(
    rule_id: int,
    admin: AuthenticatedUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await MetadataService(db, admin.tenant_id).delete_rule(rule_id)
    return Response(status_code=204)


# ==== INVOICE TEMPLATES ==== #


@router.post("/templates", response_model=InvoiceTemplateResponse, status_code=201)
async def create_template(
    payload: InvoiceTemplateRequest,
    admin: AuthenticatedUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> InvoiceTemplateResponse:
    template = await MetadataService(db, admin.tenant_id).create_template(payload)
    return InvoiceTemplateResponse.model_validate(template)


@router.get("/templates", response_model=List[InvoiceTemplateResponse])
async def list_templates(
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[InvoiceTemplateResponse]:
    templates = await MetadataService(db, user.tenant_id).list_templates()
    return [InvoiceTemplateResponse.model_validate(t) for t in templates]


@router.get("/templates/default", response_model=InvoiceTemplateResponse)
async def get_default_template(
    template_type: str = Query("INVOICE", alias="type"),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> InvoiceTemplateResponse:
    template = await MetadataService(db, user.tenant_id).default_template(template_type)
    return InvoiceTemplateResponse.model_validate(template)


@router.get("/templates/{template_id}", response_model=InvoiceTemplateResponse)
async def get_template(
    template_id: int,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> InvoiceTemplateResponse:
    template = await MetadataService(db, user.tenant_id).get_template(template_id)
    return InvoiceTemplateResponse.model_validate(template)


@router.post("/templates/{template_id}/render", response_model=RenderResponse)
async def render_template(
    template_id: int,
    payload: RenderRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> RenderResponse:
    return await MetadataService(db, user.tenant_id).render_template(template_id, payload.data, user.user_id)


@router.put("/templates/{template_id}", response_model=InvoiceTemplateResponse)
async def update_template(
    template_id: int,
    payload: InvoiceTemplateRequest,
    admin: AuthenticatedUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> InvoiceTemplateResponse:
    template = await MetadataService(db, admin.tenant_id).update_template(template_id, payload)
    return InvoiceTemplateResponse.model_validate(template)


@router.delete("/templates/{template_id}", status_code=204)
async def delete_template(
    template_id: int,
    admin: AuthenticatedUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await MetadataService(db, admin.tenant_id).delete_template(template_id)
    return Response(status_code=204)


# ==== WORKFLOWS ==== #


@router.post("/workflows", response_model=WorkflowResponse, status_code=201)
async def create_workflow(
    payload: WorkflowRequest,
    admin: AuthenticatedUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> WorkflowResponse:
    return WorkflowResponse.model_validate(await MetadataService(db, admin.tenant_id).create_workflow(payload))


@router.get("/workflows", response_model=List[WorkflowResponse])
async def list_workflows(
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[WorkflowResponse]:
    return [WorkflowResponse.model_validate(w) for w in await MetadataService(db, user.tenant_id).list_workflows()]


@router.get("/workflows/{workflow_id}", response_model=WorkflowResponse)
async def get_workflow(
    workflow_id: int,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> WorkflowResponse:
    return WorkflowResponse.model_validate(await MetadataService(db, user.tenant_id).get_workflow(workflow_id))


@router.put("/workflows/{workflow_id}", response_model=WorkflowResponse)
async def update_workflow(
    workflow_id: int,
    payload: WorkflowRequest,
    admin: AuthenticatedUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> WorkflowResponse:
    workflow = await MetadataService(db, admin.tenant_id).update_workflow(workflow_id, payload)
    return WorkflowResponse.model_validate(workflow)


@router.delete("/workflows/{workflow_id}", status_code=204)
async def delete_workflow(
    workflow_id: int,
    admin: AuthenticatedUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await MetadataService(db, admin.tenant_id).delete_workflow(workflow_id)
    return Response(status_code=204)

"""Pydantic schemas for tenant metadata definitions."""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from easybill.schemas.common import ORMModel


ConditionOperator = Literal["eq", "ne", "gt", "gte", "lt", "lte", "in", "contains"]


# ==== PLUGINS ==== #


class PluginRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    plugin_type: str = Field(..., min_length=1, max_length=64)
    version: str = Field("1.0.0", max_length=32)
    description: Optional[str] = None
    config: Dict[str, Any] = Field(default_factory=dict)
    enabled: bool = True


class PluginResponse(ORMModel):
    id: int
    name: str
    plugin_type: str
    version: str
    description: Optional[str] = None
    config: Dict[str, Any]
    enabled: bool
    created_at: datetime


# ==== BUSINESS RULES ==== #


class RuleCondition(BaseModel):
    field: str = Field(..., min_length=1)
    operator: ConditionOperator = "eq"
    value: Any = None


class RuleAction(BaseModel):
    type: Literal["set", "add_tag"] = "set"
    field: Optional[str] = None
    value: Any = None


class BusinessRuleRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    description: Optional[str] = None
    entity_type: str = Field(..., min_length=1, max_length=64)
    trigger: str = Field(..., min_length=1, max_length=64)
    condition: Optional[RuleCondition] = None
    actions: List[RuleAction] = Field(default_factory=list)
    priority: int = 0
    active: bool = True


class BusinessRuleResponse(ORMModel):
    id: int
    name: str
    description: Optional[str] = None
    entity_type: str
    trigger: str
    condition: Dict[str, Any]
    actions: List[Dict[str, Any]]
    priority: int
    active: bool
    created_at: datetime


class RuleExecutionRequest(BaseModel):
    entity_type: str
    trigger: str
    data: Dict[str, Any]


class RuleExecutionResponse(BaseModel):
    data: Dict[str, Any]
    applied_rules: List[str]
    skipped_rules: List[str] = Field(default_factory=list)
    failed_rules: Dict[str, str] = Field(default_factory=dict)


# ==== TEMPLATES ==== #


class InvoiceTemplateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    template_type: str = Field("INVOICE", max_length=32)
    format: str = Field("HTML", max_length=16)
    content: str = Field(..., min_length=1)
    variables: List[str] = Field(default_factory=list)
    is_default: bool = False
    active: bool = True


class InvoiceTemplateResponse(ORMModel):
    id: int
    name: str
    template_type: str
    format: str
    content: str
    variables: List[str]
    is_default: bool
    active: bool
    created_at: datetime


class RenderRequest(BaseModel):
    data: Dict[str, Any] = Field(default_factory=dict)


class RenderResponse(BaseModel):
    template_id: int
    format: str
    content: str


# ==== WORKFLOWS ==== #


class WorkflowStep(BaseModel):
    step_order: int = Field(..., ge=0)
    name: str = Field(..., min_length=1, max_length=128)
    action: str = Field(..., min_length=1, max_length=64)
    config: Dict[str, Any] = Field(default_factory=dict)


class WorkflowRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    description: Optional[str] = None
    entity_type: str = Field(..., min_length=1, max_length=64)
    trigger: str = Field(..., min_length=1, max_length=64)
    steps: List[WorkflowStep] = Field(default_factory=list)
    active: bool = True


class WorkflowResponse(ORMModel):
    id: int
    name: str
    description: Optional[str] = None
    entity_type: str
    trigger: str
    steps: List[Dict[str, Any]]
    active: bool
    created_at: datetime

from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field


class ConditionOperator(str, Enum):
    EQ = "eq"
    NE = "ne"
    GT = "gt"
    LT = "lt"
    GTE = "gte"
    LTE = "lte"
    IN = "in"
    NOT_IN = "not_in"
    CONTAINS = "contains"
    EXISTS = "exists"
    NOT_EXISTS = "not_exists"
    REGEX = "regex"


class LogicalOperator(str, Enum):
    AND = "and"
    OR = "or"


class RuleCondition(BaseModel):
    field: str
    operator: ConditionOperator
    value: Any = None


class RuleGroup(BaseModel):
    operator: LogicalOperator = LogicalOperator.AND
    conditions: List[RuleCondition] = Field(default_factory=list)


class DebugQuery(BaseModel):
    """
    Structured track query used by the debugQuery action.

    Only declarative filters over track fields are accepted; there is no way
    to run caller-supplied code.
    """

    user_id: str = Field(alias="userId")
    rules: RuleGroup = Field(default_factory=RuleGroup)
    order_by: Optional[str] = Field(default=None, alias="orderBy")
    descending: bool = False
    limit: Optional[int] = Field(default=None, ge=0)

    model_config = {"populate_by_name": True}

# src/benor/consensus/messages.py
"""
Consensus wire records - round opinions, decision announcements, state snapshots

A message is a tagged record {round, value, decision}. Records are validated
on intake so malformed payloads never reach the round tally.
"""

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

Bit = Literal[0, 1]


class ConsensusMessage(BaseModel):
    """An opinion report for a round, or a decision announcement"""
    model_config = ConfigDict(extra="forbid", frozen=True, strict=True)

    round: int = Field(..., ge=0, description="Round the sender is reporting for")
    value: Optional[Bit] = Field(default=None, description="Reported opinion (0 or 1)")
    decision: bool = Field(default=False, description="True for a decision announcement")

    @field_validator("value", mode="before")
    @classmethod
    def value_is_not_bool(cls, v):
        # true == 1 would otherwise match Literal[1]
        if isinstance(v, bool):
            raise ValueError("value must be 0, 1 or null, not a boolean")
        return v

    @model_validator(mode="after")
    def decision_carries_value(self):
        if self.decision and self.value is None:
            raise ValueError("decision announcement must carry a value")
        return self

    @classmethod
    def opinion(cls, round: int, value: Optional[int]) -> "ConsensusMessage":
        return cls(round=round, value=value, decision=False)

    @classmethod
    def announcement(cls, round: int, value: int) -> "ConsensusMessage":
        return cls(round=round, value=value, decision=True)


class NodeStateSnapshot(BaseModel):
    """Point-in-time view of a node: {killed, x, decided, k}"""
    killed: bool
    x: Optional[Bit]
    decided: Optional[bool]
    k: Optional[int]


def parse_message(payload: Dict[str, Any]) -> ConsensusMessage:
    """
    Validate a raw payload into a ConsensusMessage.

    Raises:
        pydantic.ValidationError: If the payload is malformed
    """
    return ConsensusMessage.model_validate(payload)

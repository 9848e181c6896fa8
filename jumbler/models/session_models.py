from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class GenderModel(str, Enum):
    male = "male"
    female = "female"
    other = "other"
    prefer_not_to_say = "prefer-not-to-say"


class MemberAttributesModel(BaseModel):
    """Attributes a participant supplies when joining a session."""

    name: str = ""
    organization: str = ""
    gender: GenderModel = GenderModel.prefer_not_to_say


class MemberModel(MemberAttributesModel):
    id: str


class TeamModel(BaseModel):
    index: int
    name: str
    color: str
    members: List[MemberModel] = Field(default_factory=list)


class FairnessConfigModel(BaseModel):
    team_count: int = 2
    balance_gender: bool = False
    diversity_weight: float = 0.7
    gender_balance_weight: float = 0.3


class FairnessConfigUpdateModel(BaseModel):
    """Partial configuration, unset fields keep their stored value.

    Ranges are checked by the coordinator, not here, so an out of range value
    is reported as InvalidConfiguration instead of a validation error.
    """

    team_count: Optional[int] = None
    balance_gender: Optional[bool] = None
    diversity_weight: Optional[float] = None
    gender_balance_weight: Optional[float] = None


class PartitionResultModel(BaseModel):
    teams: List[TeamModel] = Field(default_factory=list)
    diversity_score: int = 0
    gender_balance_score: int = 0


class SessionModel(BaseModel):
    code: str
    creator_id: str
    members: Dict[str, MemberModel] = Field(default_factory=dict)
    config: FairnessConfigModel = Field(default_factory=FairnessConfigModel)
    result: Optional[PartitionResultModel] = None
    shuffled: bool = False
    created_at: datetime = Field(default_factory=datetime.now)

    def roster(self) -> List[MemberModel]:
        return list(self.members.values())


class SessionViewModel(BaseModel):
    code: str
    members: List[MemberModel]
    config: FairnessConfigModel
    result: Optional[PartitionResultModel] = None
    shuffled: bool = False


class EventEnvelopeModel(BaseModel):
    event: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=datetime.now)

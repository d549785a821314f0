from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from trustprint.api.common.schema import Pagination, PaginationParams
from trustprint.api.modules.fingerprint.services.core import (
    FingerprintRecord,
    SignalEvaluation,
)


class FingerprintCheck(BaseModel):
    id: str
    group: str | None = None
    weight: float = Field(..., ge=0)
    lying: bool
    faulted: bool = False


class GenerateFingerprintResponse(BaseModel):
    fingerprint_id: str | None
    trust_score: float | None = Field(default=None, ge=0, le=1)
    trust_unknown: bool
    checks: list[FingerprintCheck]
    evaluated_at: datetime

    @classmethod
    def build(
        cls,
        fingerprint_id: str | None,
        evaluation: SignalEvaluation,
        evaluated_at: datetime,
    ) -> "GenerateFingerprintResponse":
        return cls(
            fingerprint_id=fingerprint_id,
            trust_score=evaluation.trust_score,
            trust_unknown=evaluation.is_trust_unknown,
            checks=[
                FingerprintCheck(
                    id=verdict.module_id,
                    group=verdict.group,
                    weight=verdict.weight,
                    lying=verdict.is_lying,
                    faulted=verdict.faulted,
                )
                for verdict in evaluation.verdicts
            ],
            evaluated_at=evaluated_at,
        )


class FingerprintRecordResponse(BaseModel):
    id: int
    fingerprint_id: str
    created_at: datetime
    updated_at: datetime
    last_seen_at: datetime | None = None
    ip_addresses: list[str]
    flagged: bool
    trust_score: float | None = None
    users: list[str]

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_record(cls, record: FingerprintRecord) -> "FingerprintRecordResponse":
        return cls(
            id=record.id,
            fingerprint_id=record.fingerprint_id,
            created_at=record.created_at,
            updated_at=record.updated_at,
            last_seen_at=record.last_seen_at,
            ip_addresses=sorted(record.ip_addresses),
            flagged=record.flagged,
            trust_score=record.trust_score,
            users=sorted(record.users),
        )


class SyncFingerprintResponse(BaseModel):
    record: FingerprintRecordResponse | None


class FingerprintRecordPaginationParams(PaginationParams):
    flagged: bool | None = None
    user_id: str | None = Field(default=None, max_length=128)


class FingerprintRecordListResponse(Pagination[FingerprintRecordResponse]):
    pass

"""Boundary schemas for operation progress, results and document listings."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from splkit.domain.fidelity import FidelityReport
from splkit.domain.importing import ImportOutcome

if TYPE_CHECKING:
    from splkit.domain.errors import SchemaViolation
    from splkit.domain.fidelity import PathComparison
    from splkit.domain.jobs import OperationError, Progress
    from splkit.domain.model import Document

type OperationStatusName = Literal["queued", "running", "succeeded", "failed"]
type VerdictName = Literal["match", "missing", "extra", "value_mismatch"]


class SplKitModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class SchemaViolationModel(SplKitModel):
    rule: str
    message: str
    location: str

    @classmethod
    def from_domain(cls, violation: SchemaViolation) -> SchemaViolationModel:
        return cls(rule=violation.rule, message=violation.message, location=violation.location)


class ImportResultModel(SplKitModel):
    document_handle: str
    set_guid: str
    version_number: int
    unchanged: bool
    entity_count: int
    violations: list[SchemaViolationModel] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, outcome: ImportOutcome) -> ImportResultModel:
        return cls(
            document_handle=str(outcome.document_handle),
            set_guid=outcome.set_guid,
            version_number=outcome.version_number,
            unchanged=outcome.unchanged,
            entity_count=outcome.entity_count,
            violations=[SchemaViolationModel.from_domain(v) for v in outcome.violations],
        )


class PathComparisonModel(SplKitModel):
    path: str
    verdict: VerdictName
    entity_kind: str
    section_code: str | None = None
    detail: str | None = None

    @classmethod
    def from_domain(cls, entry: PathComparison) -> PathComparisonModel:
        return cls(
            path=entry.path,
            verdict=entry.verdict.value,
            entity_kind=entry.entity_kind,
            section_code=entry.section_code,
            detail=entry.detail,
        )


class FidelityReportModel(SplKitModel):
    document_handle: str | None
    is_faithful: bool
    counts: dict[str, int]
    by_entity: dict[str, int]
    by_section: dict[str, int]
    entries: list[PathComparisonModel] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, report: FidelityReport, *, discrepancies_only: bool = False) -> FidelityReportModel:
        entries = report.discrepancies if discrepancies_only else report.entries
        return cls(
            document_handle=report.document_handle,
            is_faithful=report.is_faithful,
            counts={verdict.value: count for verdict, count in report.counts.items()},
            by_entity=report.by_entity,
            by_section=report.by_section,
            entries=[PathComparisonModel.from_domain(entry) for entry in entries],
        )

    def without_matches(self) -> FidelityReportModel:
        return self.model_copy(
            update={"entries": [entry for entry in self.entries if entry.verdict != "match"]}
        )


class OperationErrorModel(SplKitModel):
    kind: str
    message: str
    location: str | None = None

    @classmethod
    def from_domain(cls, error: OperationError) -> OperationErrorModel:
        return cls(kind=error.kind, message=error.message, location=error.location)


type OperationResult = list[ImportResultModel] | FidelityReportModel | None


def _result_model(result: Any) -> OperationResult:
    if result is None:
        return None
    if isinstance(result, FidelityReport):
        return FidelityReportModel.from_domain(result)
    if isinstance(result, ImportOutcome):
        return [ImportResultModel.from_domain(result)]
    return [ImportResultModel.from_domain(outcome) for outcome in result]


class ProgressResponse(SplKitModel):
    operation_id: str
    kind: str
    status: OperationStatusName
    percent: int = Field(ge=0, le=100)
    result: OperationResult = None
    error: OperationErrorModel | None = None

    @classmethod
    def from_domain(cls, progress: Progress) -> ProgressResponse:
        return cls(
            operation_id=progress.operation_id,
            kind=progress.kind,
            status=progress.status.value,
            percent=progress.percent,
            result=_result_model(progress.result),
            error=OperationErrorModel.from_domain(progress.error) if progress.error else None,
        )


class DocumentSummary(SplKitModel):
    document_handle: str
    document_guid: str
    set_guid: str | None
    version_number: int
    title: str | None = None
    effective_time: str | None = None
    is_current: bool
    content_hash: str
    imported_at: datetime | None = None

    @classmethod
    def from_domain(cls, document: Document) -> DocumentSummary:
        return cls(
            document_handle=str(document.handle),
            document_guid=document.document_guid,
            set_guid=document.set_guid,
            version_number=document.version_number,
            title=document.title,
            effective_time=document.effective_time,
            is_current=document.is_current,
            content_hash=document.content_hash,
            imported_at=document.imported_at,
        )

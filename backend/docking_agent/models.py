"""Pydantic models for jobs, tags, reports and agent payloads."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

JobStatus = Literal["pending", "processing", "analyzed", "failed"]

PENDING: JobStatus = "pending"
PROCESSING: JobStatus = "processing"
ANALYZED: JobStatus = "analyzed"
FAILED: JobStatus = "failed"

JOB_STATUSES = (PENDING, PROCESSING, ANALYZED, FAILED)


class DockingMetrics(BaseModel):
    """Measured values of one docking simulation, as sent to report generation."""

    proteinTarget: str
    ligandName: str
    bindingAffinity: float = Field(description="kcal/mol, more negative is stronger")
    rmsd: float = Field(ge=0, description="Angstrom")
    ligandEfficiency: Optional[float] = Field(default=None, description="kcal/mol/HA")
    inhibitionConstant: Optional[float] = Field(default=None, description="Ki in nM")
    interactionData: Optional[Dict[str, Any]] = None


class JobCreate(DockingMetrics):
    """Fields accepted when a new simulation job is submitted."""

    simulationId: Optional[str] = None
    visualizationUrl: Optional[str] = None


class JobUpdate(BaseModel):
    """Partial update of a job; unset fields are left untouched."""

    proteinTarget: Optional[str] = None
    ligandName: Optional[str] = None
    bindingAffinity: Optional[float] = None
    rmsd: Optional[float] = Field(default=None, ge=0)
    ligandEfficiency: Optional[float] = None
    inhibitionConstant: Optional[float] = None
    interactionData: Optional[Dict[str, Any]] = None
    visualizationUrl: Optional[str] = None
    status: Optional[JobStatus] = None


class Job(DockingMetrics):
    """A docking simulation record tracked through the pipeline."""

    id: str
    simulationId: str
    visualizationUrl: Optional[str] = None
    status: JobStatus = PENDING
    error: Optional[str] = None
    createdAt: datetime
    updatedAt: Optional[datetime] = None

    def metrics(self) -> DockingMetrics:
        return DockingMetrics(
            proteinTarget=self.proteinTarget,
            ligandName=self.ligandName,
            bindingAffinity=self.bindingAffinity,
            rmsd=self.rmsd,
            ligandEfficiency=self.ligandEfficiency,
            inhibitionConstant=self.inhibitionConstant,
            interactionData=self.interactionData,
        )


class TagSuggestion(BaseModel):
    """A categorization tag as returned by the categorization service."""

    type: str = Field(min_length=1)
    value: str = Field(min_length=1)


class Tag(BaseModel):
    id: str
    jobId: str
    tagType: str
    tagValue: str
    createdAt: datetime


class ReportContent(BaseModel):
    """Structured analysis returned by the report generation service."""

    executiveSummary: str
    fullContent: str
    performanceMetrics: Dict[str, Any] = Field(default_factory=dict)


class Report(BaseModel):
    """A persisted analysis report. `jobId` does not own the job."""

    id: str
    reportId: str
    jobId: str
    title: str
    executiveSummary: str
    fullContent: str
    performanceMetrics: Dict[str, Any] = Field(default_factory=dict)
    verificationToken: Optional[str] = None
    generatedAt: datetime


class ReportVerification(BaseModel):
    reportId: str
    verificationToken: Optional[str] = None
    verified: bool = False


class RunResult(BaseModel):
    """Outcome of one pipeline run."""

    success: bool
    jobId: str
    reportId: Optional[str] = None
    tags: List[TagSuggestion] = Field(default_factory=list)
    error: Optional[str] = None
    skipped: bool = False


class Insights(BaseModel):
    """Dashboard summary computed by the insight aggregator."""

    totalSimulations: int
    successRate: float = Field(description="analyzed / total, 0.0 when empty")
    averageBindingAffinity: float
    proteinTargets: List[str] = Field(default_factory=list)
    therapeuticAreas: List[str] = Field(default_factory=list)
    targetAreas: Dict[str, str] = Field(default_factory=dict)
    recommendations: List[str] = Field(default_factory=list)
    totalReports: int = 0
    verifiedReports: int = 0
    recentActivity: str


class DashboardStats(BaseModel):
    activeSimulations: int
    totalSimulations: int
    successRate: str
    totalReports: int


class AgentStatus(BaseModel):
    running: bool
    busy: bool
    currentJobId: Optional[str] = None
    intervalSeconds: Optional[float] = None

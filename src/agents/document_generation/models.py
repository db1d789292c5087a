"""Pydantic models for the multi-agent document generation system."""

from enum import StrEnum
from typing import Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field


class AgentRole(StrEnum):
    """Generative roles taking part in a run."""

    OUTLINER = "OUTLINER"
    CONTENT_STRATEGIST = "CONTENT_STRATEGIST"
    WRITER = "WRITER"
    EDITOR = "EDITOR"
    EDITOR_IN_CHIEF = "EDITOR_IN_CHIEF"
    RESEARCHER = "RESEARCHER"


class RevisionState(StrEnum):
    """States of the per-section draft/review loop."""

    DRAFTING = "DRAFTING"
    REVIEWING = "REVIEWING"
    APPROVED = "APPROVED"
    EXHAUSTED = "EXHAUSTED"


class DocumentRequest(BaseModel):
    """Subject and optional free-form instructions for one document."""

    subject: str = Field(..., min_length=1)
    custom_instructions: str | None = None

    model_config = ConfigDict(frozen=True, extra="forbid")


class OutlineSubSection(BaseModel):
    """Nested heading under an outline section."""

    heading: str
    level: int

    model_config = ConfigDict(frozen=True, extra="forbid")


class OutlineSection(BaseModel):
    """Top-level outline section."""

    heading: str
    level: int
    sub_sections: list[OutlineSubSection] | None = None

    model_config = ConfigDict(frozen=True, extra="forbid")


class Outline(BaseModel):
    """Document title and the canonical section order."""

    title: str
    sections: list[OutlineSection]

    model_config = ConfigDict(frozen=True, extra="forbid")


class Reference(BaseModel):
    """Cited source."""

    title: str
    url: str

    model_config = ConfigDict(frozen=True, extra="forbid")


class SectionPlan(BaseModel):
    """Key points and references a section has to cover."""

    heading: str
    key_points: list[str]
    references: list[Reference] | None = None

    model_config = ConfigDict(frozen=True, extra="forbid")


class SectionContent(BaseModel):
    """Drafted body of one section."""

    heading: str
    content: str
    references: list[Reference] | None = None

    model_config = ConfigDict(frozen=True, extra="forbid")


class SectionFeedback(BaseModel):
    """Editor verdict on a section draft."""

    approved: bool
    feedback: list[str]

    model_config = ConfigDict(frozen=True, extra="forbid")


class WriterOutput(BaseModel):
    """Writer response: the draft plus an optional reply to the editor."""

    content: SectionContent
    response_to_editor_feedback: str | None = None

    model_config = ConfigDict(frozen=True, extra="forbid")


class RevisionContext(BaseModel):
    """State carried from one rejected draft into the next draft and review."""

    previous_content: SectionContent
    previous_feedback: SectionFeedback
    writer_response: str | None = None

    model_config = ConfigDict(frozen=True, extra="forbid")


class ProposedEdit(BaseModel):
    """Literal text replacement suggested by the final review."""

    section_heading: str
    original_text: str
    feedback: str
    new_text: str
    priority: Literal["HIGH", "MEDIUM", "LOW"]

    model_config = ConfigDict(frozen=True, extra="forbid")


class FinalReview(BaseModel):
    """Editor-in-chief output over the assembled draft."""

    final_article_title: str
    global_feedback: list[str]
    proposed_edits: list[ProposedEdit]

    model_config = ConfigDict(frozen=True, extra="forbid")


class ResearchRequest(BaseModel):
    """What a calling agent wants researched."""

    query: str
    purpose: str
    context: str

    model_config = ConfigDict(frozen=True, extra="forbid")


class ResearchFinding(BaseModel):
    """Single sourced finding."""

    finding: str
    details: str
    source_title: str
    source_url: str

    model_config = ConfigDict(frozen=True, extra="forbid")


class ResearchResult(BaseModel):
    """Researcher output."""

    findings: list[ResearchFinding]

    model_config = ConfigDict(frozen=True, extra="forbid")


class TokenUsage(BaseModel):
    """Token counts of one or more model calls."""

    prompt_tokens: int = Field(0, ge=0)
    completion_tokens: int = Field(0, ge=0)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens

    def __add__(self, other: "TokenUsage") -> "TokenUsage":
        return TokenUsage(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
        )


class UsageRecord(BaseModel):
    """Usage of one agent invocation, with the usage of research it triggered nested inside."""

    agent_usage: TokenUsage
    research_usages: list[TokenUsage] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, extra="forbid")


OutputT = TypeVar("OutputT", bound=BaseModel)


class AgentOutput(BaseModel, Generic[OutputT]):
    """Validated output of one agent invocation plus its usage."""

    output: OutputT
    usage: UsageRecord

    model_config = ConfigDict(frozen=True, extra="forbid")


class SectionOutcome(BaseModel):
    """Terminal result of a section's revision loop."""

    content: SectionContent
    state: Literal[RevisionState.APPROVED, RevisionState.EXHAUSTED]
    iterations: int = Field(..., gt=0)

    model_config = ConfigDict(frozen=True, extra="forbid")


class RoleCost(BaseModel):
    """USD spent by one role: its own calls and the research nested in them."""

    self_cost: float = 0.0
    research_cost: float = 0.0

    model_config = ConfigDict(frozen=True, extra="forbid")


class CostReport(BaseModel):
    """Per-role and process-wide spend."""

    roles: dict[AgentRole, RoleCost]
    agent_total: float
    research_total: float

    model_config = ConfigDict(frozen=True, extra="forbid")

    @property
    def total(self) -> float:
        return self.agent_total + self.research_total


class RenderedDocument(BaseModel):
    """Markdown produced by the edit applier."""

    markdown: str
    applied_edits: int
    skipped_edits: int

    model_config = ConfigDict(frozen=True, extra="forbid")


class DocumentResult(BaseModel):
    """Finished document and what it cost."""

    final_document: str
    cost: float
    title: str
    sections: list[SectionOutcome]
    cost_report: CostReport

    model_config = ConfigDict(frozen=True, extra="forbid")

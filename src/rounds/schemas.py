# src/rounds/schemas.py — v1
"""Expected payload shapes for each analysis round.

Providers return JSON; the orchestrator validates it against the round's
model before caching. Unknown keys are ignored, missing lists default to
empty so a sparse but well-formed answer still validates.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError


class _RoundPayload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class PayloadValidationError(Exception):
    """Raised when a provider payload does not match the round schema."""

    def __init__(self, round_id: int, error: ValidationError) -> None:
        self.round_id = round_id
        self.error = error
        super().__init__(
            f"Round {round_id} payload failed validation "
            f"({error.error_count()} errors): {error.errors()[0]['msg']}"
        )


# === ROUND 1 — PROJECT OVERVIEW ===


class Dependency(_RoundPayload):
    name: str
    role: str = ""


class EntryPoint(_RoundPayload):
    path: str
    type: str = ""
    description: str = ""


class ProjectScale(_RoundPayload):
    file_count: int = Field(0, validation_alias=AliasChoices("file_count", "fileCount"))
    estimated_complexity: Literal["small", "medium", "large"] = Field(
        "medium",
        validation_alias=AliasChoices("estimated_complexity", "estimatedComplexity"),
    )
    main_concerns: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("main_concerns", "mainConcerns")
    )


class Round1Output(_RoundPayload):
    project_name: str = Field(validation_alias=AliasChoices("project_name", "projectName"))
    primary_language: str = Field(
        validation_alias=AliasChoices("primary_language", "primaryLanguage")
    )
    framework: str | None = None
    purpose: str
    key_dependencies: list[Dependency] = Field(
        default_factory=list,
        validation_alias=AliasChoices("key_dependencies", "keyDependencies"),
    )
    entry_points: list[EntryPoint] = Field(
        default_factory=list, validation_alias=AliasChoices("entry_points", "entryPoints")
    )
    project_scale: ProjectScale = Field(
        default_factory=ProjectScale,
        validation_alias=AliasChoices("project_scale", "projectScale"),
    )
    findings: list[str] = Field(default_factory=list)
    open_questions: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("open_questions", "openQuestions")
    )


# === ROUND 2 — MODULE DETECTION ===


class Module(_RoundPayload):
    name: str
    path: str = ""
    purpose: str = ""
    public_api: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("public_api", "publicApi")
    )
    files: list[str] = Field(default_factory=list)


class Relationship(_RoundPayload):
    source: str = Field(validation_alias=AliasChoices("source", "from"))
    target: str = Field(validation_alias=AliasChoices("target", "to"))
    type: str = ""
    evidence: str = ""


class Round2Output(_RoundPayload):
    modules: list[Module]
    relationships: list[Relationship] = Field(default_factory=list)
    boundary_issues: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("boundary_issues", "boundaryIssues")
    )
    findings: list[str] = Field(default_factory=list)
    open_questions: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("open_questions", "openQuestions")
    )


# === ROUND 3 — FEATURE EXTRACTION ===


class Feature(_RoundPayload):
    name: str
    description: str = ""
    modules: list[str] = Field(default_factory=list)
    entry_point: str = Field("", validation_alias=AliasChoices("entry_point", "entryPoint"))
    files: list[str] = Field(default_factory=list)
    user_facing: bool = Field(False, validation_alias=AliasChoices("user_facing", "userFacing"))


class Round3Output(_RoundPayload):
    features: list[Feature]
    findings: list[str] = Field(default_factory=list)
    open_questions: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("open_questions", "openQuestions")
    )


# === ROUND 4 — ARCHITECTURE DETECTION ===


class ArchitecturePattern(_RoundPayload):
    name: str
    confidence: Literal["high", "medium", "low"] = "medium"
    evidence: list[str] = Field(default_factory=list)
    modules: list[str] = Field(default_factory=list)


class Round4Output(_RoundPayload):
    patterns: list[ArchitecturePattern]
    layering: str = ""
    data_flow: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("data_flow", "dataFlow")
    )
    findings: list[str] = Field(default_factory=list)
    open_questions: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("open_questions", "openQuestions")
    )


# === ROUND 5 — EDGE CASES & CONVENTIONS ===


class EdgeCase(_RoundPayload):
    file: str
    description: str
    severity: Literal["critical", "warning", "info"] = "info"


class Round5Output(_RoundPayload):
    edge_cases: list[EdgeCase] = Field(
        validation_alias=AliasChoices("edge_cases", "edgeCases")
    )
    conventions: list[str] = Field(default_factory=list)
    findings: list[str] = Field(default_factory=list)
    open_questions: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("open_questions", "openQuestions")
    )


# === ROUND 6 — DEPLOYMENT INFERENCE ===


class DeploymentTarget(_RoundPayload):
    name: str
    evidence: list[str] = Field(default_factory=list)


class Round6Output(_RoundPayload):
    deployment_targets: list[DeploymentTarget] = Field(
        validation_alias=AliasChoices("deployment_targets", "deploymentTargets")
    )
    build_steps: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("build_steps", "buildSteps")
    )
    environment_variables: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("environment_variables", "environmentVariables"),
    )
    findings: list[str] = Field(default_factory=list)
    open_questions: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("open_questions", "openQuestions")
    )


ROUND_SCHEMAS: dict[int, type[BaseModel]] = {
    1: Round1Output,
    2: Round2Output,
    3: Round3Output,
    4: Round4Output,
    5: Round5Output,
    6: Round6Output,
}


def validate_round_payload(
    round_id: int,
    data: dict[str, Any],
    schema: type[BaseModel] | None,
) -> dict[str, Any]:
    """Validate a payload and return its normalized JSON form.

    Rounds without a schema pass through unchanged.

    Raises:
        PayloadValidationError: If the payload does not match the schema.
    """
    if schema is None:
        return data
    try:
        model = schema.model_validate(data)
    except ValidationError as e:
        raise PayloadValidationError(round_id, e) from e
    return model.model_dump(mode="json")

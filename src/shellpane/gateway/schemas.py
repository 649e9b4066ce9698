# gateway/schemas.py
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..model import Category, ExecutionResult, InputSpec, Sequence, Step, ViewConfig

# -------------------- Wire schemas --------------------
# The dashboard server speaks JSON with capitalised field names.


class _Wire(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ResponseError(_Wire):
    code: str = Field(default="", alias="Code")
    message: str = Field(default="", alias="Message")


class ErrorResponse(_Wire):
    error: Optional[ResponseError] = Field(default=None, alias="Error")

    def failed(self) -> bool:
        return self.error is not None and bool(self.error.code or self.error.message)


class InputConfig(_Wire):
    slug: str = Field(alias="Slug")
    description: str = Field(default="", alias="Description")


class CommandInputConfig(_Wire):
    name: str = Field(default="", alias="Name")
    input: InputConfig = Field(alias="Input")

    def to_domain(self) -> InputSpec:
        return InputSpec(slug=self.input.slug, description=self.input.description or None)


class CommandConfig(_Wire):
    slug: str = Field(alias="Slug")
    command: str = Field(default="", alias="Command")
    display: str = Field(default="", alias="Display")
    description: str = Field(default="", alias="Description")
    inputs: Optional[List[CommandInputConfig]] = Field(default=None, alias="Inputs")

    def to_step(self, name: str) -> Step:
        return Step(
            name=name,
            command_ref=self.slug,
            inputs=[i.to_domain() for i in self.inputs or []],
            display=self.display,
            description=self.description,
        )


class StepConfig(_Wire):
    name: str = Field(alias="Name")
    command: CommandConfig = Field(alias="Command")


class SequenceConfig(_Wire):
    slug: str = Field(default="", alias="Slug")
    steps: Optional[List[StepConfig]] = Field(default=None, alias="Steps")


class CategoryConfig(_Wire):
    slug: str = Field(alias="Slug")
    name: str = Field(default="", alias="Name")
    color: str = Field(default="", alias="Color")

    def to_domain(self) -> Category:
        return Category(slug=self.slug, name=self.name, color=self.color)


class ViewExecuteConfig(_Wire):
    auto: bool = Field(default=False, alias="Auto")


class ViewConfigModel(_Wire):
    name: str = Field(alias="Name")
    slug: str = Field(default="", alias="Slug")
    execute: ViewExecuteConfig = Field(default_factory=ViewExecuteConfig, alias="Execute")
    command: Optional[CommandConfig] = Field(default=None, alias="Command")
    sequence: Optional[SequenceConfig] = Field(default=None, alias="Sequence")
    category: Optional[CategoryConfig] = Field(default=None, alias="Category")
    # View-level inputs collected before the first step
    inputs: Optional[List[CommandInputConfig]] = Field(default=None, alias="Inputs")

    def to_domain(self) -> ViewConfig:
        category = self.category.to_domain() if self.category else None
        view_inputs = [i.to_domain() for i in self.inputs or []]

        # The server sends zero-valued structs for the unused half
        if self.sequence is not None and self.sequence.steps:
            sequence = Sequence(
                slug=self.sequence.slug or self.slug,
                steps=[s.command.to_step(s.name) for s in self.sequence.steps],
                inputs=view_inputs,
            )
            return ViewConfig(
                name=self.name,
                slug=self.slug,
                category=category,
                sequence=sequence,
                auto_execute=self.execute.auto,
            )

        if self.command is None or not self.command.slug:
            raise ValueError(f"view {self.name!r} has neither a command nor steps")

        step = self.command.to_step(self.name)
        if view_inputs:
            return ViewConfig(
                name=self.name,
                slug=self.slug,
                category=category,
                sequence=Sequence(slug=self.slug or self.name, steps=[step], inputs=view_inputs),
                auto_execute=self.execute.auto,
            )
        return ViewConfig(
            name=self.name,
            slug=self.slug,
            category=category,
            command=step,
            auto_execute=self.execute.auto,
        )


class GetViewConfigsResponse(ErrorResponse):
    view_configs: Optional[List[ViewConfigModel]] = Field(default=None, alias="ViewConfigs")


class GetCategoryConfigsResponse(ErrorResponse):
    category_configs: Optional[List[CategoryConfig]] = Field(default=None, alias="CategoryConfigs")


class CommandOutput(_Wire):
    stdout: str = Field(default="", alias="Stdout")
    stderr: str = Field(default="", alias="Stderr")
    exit_code: int = Field(default=0, alias="ExitCode")


class ExecuteCommandResponse(ErrorResponse):
    output: Optional[CommandOutput] = Field(default=None, alias="Output")

    def to_result(self) -> ExecutionResult:
        out = self.output or CommandOutput()
        return ExecutionResult(stdout=out.stdout, stderr=out.stderr, exit_code=out.exit_code)

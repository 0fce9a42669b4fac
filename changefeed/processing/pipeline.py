"""
Entry Pipeline
==============

Composes the stateless transforms into a fixed recipe and records how many
entries survive each stage. Tools build one pipeline per invocation.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Sequence, Tuple

from ..models import Entry
from ..utils.logging import get_logger_for_component

Stage = Callable[[List[Entry]], List[Entry]]


@dataclass
class PipelineResult:
    """Entries produced by a pipeline run plus per-stage survivor counts."""
    entries: List[Entry]
    input_count: int
    stage_counts: Dict[str, int] = field(default_factory=dict)


class EntryPipeline:
    """Ordered list of named transforms."""

    def __init__(self, name: str = "pipeline"):
        self.name = name
        self.stages: List[Tuple[str, Stage]] = []
        self.logger = get_logger_for_component("pipeline", tool_name=name)

    def then(self, stage_name: str, stage: Stage) -> "EntryPipeline":
        """Append a stage; returns self for chaining."""
        self.stages.append((stage_name, stage))
        return self

    def when(self, condition: bool, stage_name: str, stage: Stage) -> "EntryPipeline":
        """Append a stage only when ``condition`` holds."""
        if condition:
            self.stages.append((stage_name, stage))
        return self

    def run(self, entries: Sequence[Entry]) -> PipelineResult:
        current = list(entries)
        result = PipelineResult(entries=current, input_count=len(current))

        for stage_name, stage in self.stages:
            current = stage(current)
            result.stage_counts[stage_name] = len(current)
            self.logger.debug(f"{self.name}: {stage_name} -> {len(current)} entries")

        result.entries = current
        return result

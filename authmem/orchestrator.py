"""Request pipeline: acquire, extract, aggregate, assemble, render, clean up."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .acquisition import AcquisitionController, SourceInput
from .acquisition.controller import CloneRunner
from .acquisition.github import Fetcher
from .aggregator import aggregate
from .assembler import Assembler, Clock
from .config import AuthMemConfig, load_config
from .corpus import SourceCorpus
from .extractors import Extractor, discover_extractors
from .logging import get_logger
from .models import AuthMemory
from .recorder import ProcessLog, StepRecorder
from .serializer import render


@dataclass
class ExtractionOutcome:
    """Result of one extraction request."""

    memory: AuthMemory
    artifact: str
    format: str
    process_steps: List[Dict[str, Any]] = field(default_factory=list)

    def to_response(self) -> Dict[str, Any]:
        return {
            "success": True,
            "authMemory": self.artifact,
            "authMemoryData": self.memory.to_dict(),
            "metadata": self.memory.summary(),
            "processSteps": self.process_steps,
        }


class Orchestrator:
    """Runs extraction requests; every owned working tree is removed on exit."""

    def __init__(
        self,
        config: AuthMemConfig | None = None,
        *,
        extractors: Optional[Iterable[Extractor]] = None,
        assembler: Assembler | None = None,
        clock: Clock | None = None,
        fetcher: Fetcher | None = None,
        clone_runner: CloneRunner | None = None,
    ) -> None:
        self.config = config if config is not None else load_config()
        self.extractors: List[Extractor] = (
            list(extractors) if extractors is not None else discover_extractors(self.config.extraction)
        )
        self.assembler = assembler or Assembler(clock=clock)
        self._fetcher = fetcher
        self._clone_runner = clone_runner
        self.logger = get_logger("orchestrator")

    def run(
        self,
        source: SourceInput,
        *,
        recorder: StepRecorder | None = None,
        fmt: str | None = None,
        project_name: str | None = None,
    ) -> ExtractionOutcome:
        """Acquire ``source``, extract its auth memory, and render the artifact."""
        log = recorder if recorder is not None else ProcessLog()
        output_format = fmt or self.config.output.format
        self.logger.info("Starting extraction for %s", source.description)

        tree = self._controller(log).acquire(source)
        step = "extract_auth"
        try:
            log.record(step, "in_progress", "Analyzing codebase and extracting auth patterns...")
            memory = self.extract_directory(
                tree.root,
                project_name=project_name or source.project_name,
                source_path=source.description,
            )
            summary = memory.summary()
            log.record(
                step,
                "completed",
                "Auth patterns extracted: {authProvider}, {sessionStrategy} sessions, "
                "{roles} roles, {apiGuards} API guards".format(**summary),
            )

            step = "generate_file"
            log.record(step, "in_progress", "Generating auth memory file...")
            artifact = render(memory, output_format)
            log.record(step, "completed", "Auth memory file generated successfully")
        except Exception as exc:
            log.record(step, "failed", str(exc))
            raise
        finally:
            if tree.owned:
                log.record("cleanup", "in_progress", "Cleaning up temporary files...")
                tree.cleanup()
                log.record("cleanup", "completed", "Cleanup completed")

        self.logger.info(
            "Extraction finished: %s, %s sessions, %d roles, %d API guards",
            summary["authProvider"],
            summary["sessionStrategy"],
            summary["roles"],
            summary["apiGuards"],
        )
        steps = log.to_list() if isinstance(log, ProcessLog) else []
        return ExtractionOutcome(
            memory=memory, artifact=artifact, format=output_format, process_steps=steps
        )

    def extract_directory(
        self,
        root: Path | str,
        *,
        project_name: str | None = None,
        source_path: str | None = None,
    ) -> AuthMemory:
        """Run the extractors over an existing directory without acquiring anything."""
        extraction = self.config.extraction
        corpus = SourceCorpus(
            root,
            exclude_paths=extraction.exclude_paths,
            max_file_bytes=extraction.max_file_bytes,
        )
        results = {}
        for extractor in self.extractors:
            results[extractor.name] = extractor.extract(corpus)
            self.logger.debug("Extractor %s finished", extractor.name)
        facts = aggregate(results)
        return self.assembler.assemble(
            corpus,
            facts,
            project_name=project_name or corpus.root.name or "unknown",
            source_path=source_path or str(root),
        )

    def _controller(self, recorder: StepRecorder) -> AcquisitionController:
        return AcquisitionController(
            self.config.acquisition,
            recorder=recorder,
            fetcher=self._fetcher,
            clone_runner=self._clone_runner,
        )


__all__ = ["ExtractionOutcome", "Orchestrator"]

"""
Generation orchestrator for DDD Auto Generator.

Runs in two phases:

  Phase A (``prepare``), single-threaded: ingestion, registration, relation
  inference, junction synthesis, validation and enum collection. Produces an
  immutable ``RegistrySnapshot``.

  Phase B (``generate``): global generators once, then one task per aggregate
  on a thread pool. Each task runs the per-aggregate generators in a fixed
  order. A failing generator is recorded and its siblings carry on.
"""

import logging
import threading
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .codegen import ArtifactGenerator, FileSystemWriter, GenerationSettings, GeneratorFactory, PathLockRegistry
from .codegen.writer import ArtifactWriter
from .colored_logging import log_highlight, log_progress, log_section, log_success
from .constants import ArtifactKinds
from .domain.models import AggregateDescriptor, Artifact
from .domain.registry import Registry, RegistrySnapshot
from .domain.relationships import RelationshipAnalyzer
from .exceptions import (
    GenerationError,
    PartialGenerationError,
    RelationValidationError,
    RelationValidationFailed,
    SpliceError,
)
from .ingestion import ModelParser


logger = logging.getLogger(__name__)

CANCELLED_ERROR_CODE = "GENERATION_CANCELLED"


@dataclass
class GenerationSummary:
    """Outcome of one run, aggregated per artifact kind."""

    successes: Dict[str, int] = field(default_factory=lambda: defaultdict(int))
    failures: Dict[str, int] = field(default_factory=lambda: defaultdict(int))
    generation_errors: List[GenerationError] = field(default_factory=list)
    splice_errors: List[SpliceError] = field(default_factory=list)
    validation_errors: List[RelationValidationError] = field(default_factory=list)
    written_paths: List[str] = field(default_factory=list)
    cancelled: bool = False

    def record_success(self, kind: str, paths: List[str]) -> None:
        self.successes[kind] += 1
        self.written_paths.extend(paths)

    def record_failure(self, error: GenerationError) -> None:
        self.failures[error.artifact_kind or "unknown"] += 1
        if isinstance(error, SpliceError):
            self.splice_errors.append(error)
        else:
            self.generation_errors.append(error)

    @property
    def errors(self) -> List[GenerationError]:
        return self.generation_errors + self.splice_errors

    @property
    def has_failures(self) -> bool:
        return bool(self.generation_errors or self.splice_errors)

    def log(self) -> None:
        """Log per-kind counts and every collected error."""
        log_section(logger, "Generation Summary")
        for kind in ArtifactKinds.ALL:
            ok, failed = self.successes.get(kind, 0), self.failures.get(kind, 0)
            if ok or failed:
                logger.info(f"  {kind:<22} {ok:>4} ok  {failed:>4} failed")

        for error in self.validation_errors:
            logger.warning(f"Relation: {error.message}")
        for error in self.splice_errors:
            logger.error(f"Splice [{error.aggregate}]: {error.message} ({error.file_path})")
        for error in self.generation_errors:
            logger.error(f"Generation [{error.aggregate or 'global'}/{error.artifact_kind}]: {error.message}")

        if self.cancelled:
            logger.warning("Generation was cancelled before all artifacts were produced")
        log_highlight(logger, f"{len(self.written_paths)} file(s) written")


@dataclass
class _TaskResult:
    aggregate: str
    successes: List[Tuple[str, List[str]]] = field(default_factory=list)
    errors: List[GenerationError] = field(default_factory=list)


class GenerationOrchestrator:
    """
    Drives ingestion, analysis and artifact generation for one model directory.

    Example:
        >>> orchestrator = GenerationOrchestrator(config)
        >>> summary = orchestrator.run()
    """

    def __init__(
        self,
        config,
        writer: Optional[ArtifactWriter] = None,
        parser: Optional[ModelParser] = None,
        generators: Optional[Dict[str, ArtifactGenerator]] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        """
        Args:
            config: Validated ``ToolConfigSchema``
            writer: Destination of rendered artifacts (defaults to the output directory)
            parser: Model front-end (defaults to ``ModelParser``)
            generators: Generators by kind (defaults to every enabled kind)
            cancel_event: Set it to stop Phase B from starting further generators
        """
        self.config = config
        self.writer = writer or FileSystemWriter(config.output_dir)
        self.parser = parser or ModelParser()
        self.generators = generators if generators is not None else GeneratorFactory.create_all(
            config.artifacts, GenerationSettings.from_config(config)
        )
        self.cancel_event = cancel_event or threading.Event()
        self.path_locks = PathLockRegistry()
        self.validation_errors: List[RelationValidationError] = []

    # ---- Phase A ----

    def prepare(self) -> RegistrySnapshot:
        """
        Build and validate the registry.

        Raises:
            IngestionError: If a model file is malformed
            RelationValidationFailed: In strict mode, when any relation dangles
        """
        log_progress(logger, f"Parsing domain model in {self.config.model_dir}...")
        aggregates = self.parser.parse_directory(self.config.model_dir)

        registry = Registry()
        for aggregate in aggregates:
            registry.register(aggregate)
        log_success(logger, f"Registered {len(registry)} aggregate(s)")

        analyzer = RelationshipAnalyzer(registry, self.config.external_refs)
        relations = analyzer.analyze_relations()
        junctions = analyzer.generate_junction_tables()
        logger.info(f"Inferred {len(relations)} relation(s) and {len(junctions)} junction table(s)")

        self.validation_errors = analyzer.validate_relations()
        if self.validation_errors:
            for error in self.validation_errors:
                if self.config.strict_relations:
                    logger.error(error.message)
                else:
                    logger.warning(error.message)
            if self.config.strict_relations:
                raise RelationValidationFailed(self.validation_errors)

        enums = registry.collect_enums()
        logger.info(f"Collected {len(enums)} enum(s)")

        for aggregate in registry.get_all():
            log_highlight(logger, aggregate.summary())

        return registry.snapshot()

    # ---- Phase B ----

    def generate(self, snapshot: RegistrySnapshot) -> GenerationSummary:
        """Run every enabled generator against the snapshot."""
        summary = GenerationSummary(validation_errors=list(self.validation_errors))

        for kind in ArtifactKinds.GLOBAL:
            generator = self.generators.get(kind)
            if generator is None:
                continue
            if self.cancel_event.is_set():
                summary.record_failure(self._cancelled(kind, None))
                continue
            try:
                summary.record_success(kind, self._write_all(generator.generate(None, snapshot)))
            except PartialGenerationError as e:
                summary.record_success(kind, self._write_all(e.artifacts))
                for error in e.errors:
                    summary.record_failure(self._as_generation_error(error, kind, error.aggregate))
            except Exception as e:
                summary.record_failure(self._as_generation_error(e, kind, None))

        aggregates = [a for a in snapshot.get_all() if self.config.wants(a.name)]
        log_progress(logger, f"Generating artifacts for {len(aggregates)} aggregate(s) with {self.config.workers} worker(s)...")

        executor = ThreadPoolExecutor(max_workers=self.config.workers, thread_name_prefix="ddd-gen")
        try:
            futures = {executor.submit(self._run_aggregate, a, snapshot): a for a in aggregates}
            for future in as_completed(futures):
                result = future.result()
                for kind, paths in result.successes:
                    summary.record_success(kind, paths)
                for error in result.errors:
                    summary.record_failure(error)
                if not result.errors:
                    log_success(logger, f"{result.aggregate}: {len(result.successes)} artifact kind(s) generated")
        except KeyboardInterrupt:
            self.cancel_event.set()
            raise
        finally:
            executor.shutdown(wait=True, cancel_futures=self.cancel_event.is_set())

        summary.cancelled = self.cancel_event.is_set()
        return summary

    def run(self) -> GenerationSummary:
        """Phase A followed by Phase B."""
        snapshot = self.prepare()
        return self.generate(snapshot)

    def cancel(self) -> None:
        self.cancel_event.set()

    def _run_aggregate(self, aggregate: AggregateDescriptor, snapshot: RegistrySnapshot) -> _TaskResult:
        result = _TaskResult(aggregate=aggregate.name)

        for kind in ArtifactKinds.PER_AGGREGATE:
            generator = self.generators.get(kind)
            if generator is None:
                continue
            if self.cancel_event.is_set():
                result.errors.append(self._cancelled(kind, aggregate.name))
                continue

            try:
                if generator.in_place:
                    if aggregate.source_path is None:
                        logger.debug(f"{aggregate.name}: no source file, skipping {kind}")
                        continue
                    with self.path_locks.lock_for(aggregate.source_path):
                        paths = self._write_all(generator.generate(aggregate, snapshot))
                else:
                    paths = self._write_all(generator.generate(aggregate, snapshot))
                result.successes.append((kind, paths))
            except Exception as e:
                logger.debug(f"{kind} failed for {aggregate.name}", exc_info=True)
                result.errors.append(self._as_generation_error(e, kind, aggregate.name))

        return result

    def _write_all(self, artifacts: List[Artifact]) -> List[str]:
        return [self.writer.write(artifact) for artifact in artifacts]

    @staticmethod
    def _as_generation_error(error: Exception, kind: str, aggregate: Optional[str]) -> GenerationError:
        if isinstance(error, GenerationError):
            error.artifact_kind = error.artifact_kind or kind
            error.aggregate = error.aggregate or aggregate
            error.context.setdefault('artifact_kind', error.artifact_kind)
            if error.aggregate:
                error.context.setdefault('aggregate', error.aggregate)
            return error
        return GenerationError(
            f"{type(error).__name__}: {error}",
            artifact_kind=kind,
            aggregate=aggregate,
        )

    @staticmethod
    def _cancelled(kind: str, aggregate: Optional[str]) -> GenerationError:
        return GenerationError(
            "Cancelled before start",
            artifact_kind=kind,
            aggregate=aggregate,
            error_code=CANCELLED_ERROR_CODE,
        )

"""
Custom exception hierarchy for DDD Auto Generator.

This module provides a comprehensive exception system with rich context
and error recovery guidance for contributors and users.
"""

from typing import Dict, Any, Optional, List


class DDDGeneratorError(Exception):
    """
    Base exception for all DDD Auto Generator errors.

    Provides rich context and error recovery guidance.
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
        error_code: Optional[str] = None
    ):
        """
        Initialize the exception with context and recovery suggestions.

        Args:
            message: Human-readable error message
            context: Additional context about where/why the error occurred
            suggestions: List of potential solutions or next steps
            error_code: Unique error code for programmatic handling
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.suggestions = suggestions or []
        self.error_code = error_code

    def __str__(self) -> str:
        """Return formatted error message with context."""
        lines = [super().__str__()]

        if self.error_code:
            lines.append(f"Error Code: {self.error_code}")

        if self.context:
            lines.append("Context:")
            for key, value in self.context.items():
                lines.append(f"  {key}: {value}")

        if self.suggestions:
            lines.append("Suggestions:")
            for suggestion in self.suggestions:
                lines.append(f"  • {suggestion}")

        return "\n".join(lines)


class ConfigurationError(DDDGeneratorError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message: str, config_file: str = None, **kwargs):
        context = kwargs.get('context', {})
        if config_file:
            context['config_file'] = config_file

        suggestions = kwargs.get('suggestions', [])
        if not suggestions:
            suggestions = [
                "Check the configuration file syntax",
                "Verify all required fields are present",
                "Check the documentation for configuration examples"
            ]

        super().__init__(
            message,
            context=context,
            suggestions=suggestions,
            error_code="CONFIG_ERROR"
        )


class IngestionError(DDDGeneratorError):
    """Raised when a domain model declaration cannot be turned into a descriptor."""

    def __init__(
        self,
        message: str,
        file_path: str = None,
        aggregate: str = None,
        field: str = None,
        line: int = None,
        **kwargs
    ):
        context = kwargs.get('context', {})
        if file_path:
            context['file'] = file_path
        if line:
            context['line'] = line
        if aggregate:
            context['aggregate'] = aggregate
        if field:
            context['field'] = field

        suggestions = kwargs.get('suggestions', [])
        if not suggestions:
            suggestions = [
                "Check the declaration for syntax errors",
                "Verify every +ddd: annotation is spelled correctly",
                "Use plain, Optional[...] or List[...] field annotations"
            ]

        super().__init__(
            message,
            context=context,
            suggestions=suggestions,
            error_code="INGESTION_ERROR"
        )


class AggregateNotFoundError(DDDGeneratorError, KeyError):
    """Raised when an aggregate is looked up by a name that was never registered."""

    def __init__(self, name: str, **kwargs):
        super().__init__(
            f"Aggregate '{name}' is not registered",
            context={'aggregate': name},
            suggestions=kwargs.get('suggestions', [
                "Check the spelling of the aggregate name",
                "Make sure the declaring class carries +ddd:aggregate"
            ]),
            error_code="AGGREGATE_NOT_FOUND"
        )
        self.name = name

    # KeyError wraps its message in quotes; keep the rich rendering.
    __str__ = DDDGeneratorError.__str__


class RelationValidationError(DDDGeneratorError):
    """Raised (or collected) when a relation points at an aggregate that does not exist."""

    def __init__(
        self,
        message: str,
        source_aggregate: str = None,
        target_aggregate: str = None,
        field: str = None,
        **kwargs
    ):
        context = kwargs.get('context', {})
        if source_aggregate:
            context['source_aggregate'] = source_aggregate
        if field:
            context['field'] = field
        if target_aggregate:
            context['target_aggregate'] = target_aggregate

        suggestions = kwargs.get('suggestions', [])
        if not suggestions:
            suggestions = [
                "Declare the target aggregate in the model directory",
                "Add the target to 'external_refs' if it lives in another context",
                "Fix the +ddd:ref annotation argument"
            ]

        super().__init__(
            message,
            context=context,
            suggestions=suggestions,
            error_code="RELATION_VALIDATION_ERROR"
        )
        self.source_aggregate = source_aggregate
        self.target_aggregate = target_aggregate
        self.field = field


class RelationValidationFailed(DDDGeneratorError):
    """Raised after Phase A when strict relation validation found dangling references."""

    def __init__(self, errors: List[RelationValidationError]):
        super().__init__(
            f"{len(errors)} relation validation error(s) found",
            context={'errors': "; ".join(error.message for error in errors)},
            suggestions=["Fix the references or run with --no-strict"],
            error_code="RELATION_VALIDATION_FAILED"
        )
        self.errors = errors


class GenerationError(DDDGeneratorError):
    """Raised when a single generator fails for a single aggregate."""

    def __init__(self, message: str, artifact_kind: str = None, aggregate: str = None, **kwargs):
        context = kwargs.get('context', {})
        if artifact_kind:
            context['artifact_kind'] = artifact_kind
        if aggregate:
            context['aggregate'] = aggregate

        suggestions = kwargs.get('suggestions', [])
        if not suggestions:
            suggestions = [
                "Check the aggregate declaration for unsupported patterns",
                "Verify the output directory is writable",
                "Re-run with --verbose for the full traceback"
            ]

        super().__init__(
            message,
            context=context,
            suggestions=suggestions,
            error_code=kwargs.get('error_code', "GENERATION_ERROR")
        )
        self.artifact_kind = artifact_kind
        self.aggregate = aggregate


class PartialGenerationError(GenerationError):
    """
    Raised by a global generator that rendered its artifacts but had to leave
    some aggregates out of them.

    The orchestrator writes ``artifacts`` and records each of ``errors``.
    """

    def __init__(self, artifacts: list, errors: List[GenerationError], artifact_kind: str = None):
        super().__init__(
            f"{len(errors)} aggregate(s) left out of the artifact",
            artifact_kind=artifact_kind,
            context={'skipped': ", ".join(str(error.aggregate) for error in errors)},
            error_code="PARTIAL_GENERATION"
        )
        self.artifacts = artifacts
        self.errors = errors


class SpliceError(GenerationError):
    """Raised when the sentinel marker of a human-authored file is missing, duplicated or corrupted."""

    def __init__(self, message: str, file_path: str = None, line: int = None, **kwargs):
        context = kwargs.get('context', {})
        if file_path:
            context['file'] = file_path
        if line:
            context['line'] = line

        suggestions = kwargs.get('suggestions', [])
        if not suggestions:
            suggestions = [
                "Keep exactly one generated-section marker in the file",
                "Restore the marker line exactly as generated",
                "Delete the generated section to let it be appended again"
            ]

        super().__init__(
            message,
            artifact_kind=kwargs.get('artifact_kind'),
            aggregate=kwargs.get('aggregate'),
            context=context,
            suggestions=suggestions,
            error_code="SPLICE_ERROR"
        )
        self.file_path = file_path


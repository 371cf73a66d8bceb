"""
Base classes and shared rendering for artifact generators.

Every generator turns one aggregate (or, for global generators, the whole
snapshot) into a list of ``Artifact`` objects. Generators only render: they
never write files, so a failing generator leaves nothing behind.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined, ext as jinja2_extensions

from ..codegen_utils import format_python_code_using_black
from ..constants import DefaultConfig, FileExtensions, OutputLayout
from ..domain.models import AggregateDescriptor, Artifact
from ..domain.naming import pluralize, to_lower_snake, to_pascal_case, to_snake_case
from ..domain.registry import RegistrySnapshot


logger = logging.getLogger(__name__)

# Define the path to the templates directory relative to this package
TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"


def jinja2_pluralize_filter(word):
    """Custom Jinja filter to pluralize a word using inflect."""
    return pluralize(word)


def setup_jinja_env() -> Environment:
    """Sets up and returns the Jinja2 environment."""
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=False,  # Output is Python and SQL, never HTML
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        undefined=StrictUndefined,
        extensions=[jinja2_extensions.loopcontrols],
    )
    env.filters["repr"] = repr
    env.filters["pluralize"] = jinja2_pluralize_filter
    env.filters["snake"] = to_snake_case
    env.filters["lower_snake"] = to_lower_snake
    env.filters["pascal"] = to_pascal_case
    return env


@dataclass(frozen=True)
class GenerationSettings:
    """Package names and switches shared by all generators."""

    base_package: str = DefaultConfig.BASE_PACKAGE
    model_package: str = DefaultConfig.MODEL_PACKAGE
    runtime_package: str = DefaultConfig.RUNTIME_PACKAGE
    format_code: bool = True

    @classmethod
    def from_config(cls, config) -> "GenerationSettings":
        return cls(
            base_package=config.base_package,
            model_package=config.model_package,
            runtime_package=config.runtime_package,
            format_code=config.format_code,
        )


class ArtifactGenerator(ABC):
    """
    Strategy for one artifact kind.

    Subclasses set ``kind`` and implement ``generate``. ``is_global``
    generators run once per snapshot with ``aggregate=None``; ``in_place``
    generators rewrite an existing file and are serialized per path by the
    orchestrator.
    """

    kind: str = ""
    is_global: bool = False
    in_place: bool = False

    def __init__(self, settings: Optional[GenerationSettings] = None, env: Optional[Environment] = None):
        self.settings = settings or GenerationSettings()
        self.env = env or setup_jinja_env()

    @abstractmethod
    def generate(self, aggregate: Optional[AggregateDescriptor], snapshot: RegistrySnapshot) -> List[Artifact]:
        """Render the artifacts of this kind."""
        pass

    def output_path(self, filename: str) -> str:
        """Output path of a file of this kind, relative to the output directory."""
        return f"{OutputLayout.DIRECTORIES[self.kind]}/{filename}"

    def render(self, template_name: str, context: Dict[str, Any]) -> str:
        template = self.env.get_template(template_name)
        return template.render(context)

    def finalize(self, path: str, content: str) -> str:
        """Format Python output so repeated runs produce identical bytes."""
        if self.settings.format_code and path.endswith(FileExtensions.PYTHON):
            return format_python_code_using_black(path, content)
        return content

    def artifact(self, path: str, content: str, aggregate: Optional[AggregateDescriptor] = None) -> Artifact:
        return Artifact(
            path=path,
            content=self.finalize(path, content),
            kind=self.kind,
            aggregate=aggregate.name if aggregate else None,
        )

    def base_context(self, aggregate: Optional[AggregateDescriptor] = None) -> Dict[str, Any]:
        """Template variables every generator shares."""
        context: Dict[str, Any] = {
            "base_package": self.settings.base_package,
            "model_package": self.settings.model_package,
            "runtime_package": self.settings.runtime_package,
        }
        if aggregate is not None:
            id_field = aggregate.id_field
            context.update({
                "aggregate": aggregate,
                "name": aggregate.name,
                "snake_name": to_snake_case(aggregate.name),
                "table_name": to_lower_snake(aggregate.name),
                "model_module": f"{self.settings.model_package}.{aggregate.module_name}",
                "id_field": id_field,
                "id_type": id_field.semantic_type if id_field else "int",
                "traits": aggregate.base_entity_traits,
            })
        return context

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} kind={self.kind!r}>"


def module_filename(aggregate: AggregateDescriptor, suffix: str) -> str:
    """File name for a per-aggregate module, e.g. ``order_item_repository.py``."""
    return f"{to_snake_case(aggregate.name)}{suffix}{FileExtensions.PYTHON}"

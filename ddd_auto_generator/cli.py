import argparse
import logging
import sys
from pathlib import Path

from ddd_auto_generator.codegen import MemoryWriter
from ddd_auto_generator.config import load_config
from ddd_auto_generator.constants import DefaultConfig
from ddd_auto_generator.exceptions import (
    ConfigurationError,
    IngestionError,
    RelationValidationFailed,
)
from ddd_auto_generator.orchestrator import GenerationOrchestrator

from ddd_auto_generator.colored_logging import (
    setup_colored_logging,
    get_colored_logger,
    log_success,
    log_progress,
    log_section
)

# Note: Colored logging will be configured after parsing args
logger = None

EXIT_OK = 0
EXIT_INPUT_ERROR = 1
EXIT_VALIDATION_ERROR = 2
EXIT_GENERATION_ERROR = 3
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ddd-auto-generator",
        description="Generate persistence objects, repositories, services and schema DDL from an annotated domain model.",
    )
    parser.add_argument(
        "model_dir",
        nargs="?",
        default=None,
        help="Directory containing the annotated domain model modules. Overrides config file setting.",
    )
    parser.add_argument(
        "-c",
        "--config",
        help=f"Path to the YAML configuration file (default: ./{DefaultConfig.CONFIG_FILE_NAME} if present).",
    )
    parser.add_argument(
        "-o",
        "--output-dir",
        help="Directory to write generated artifacts to. Overrides config file setting.",
    )
    parser.add_argument(
        "-w",
        "--workers",
        type=int,
        help="Number of concurrent generation workers. Overrides config file setting.",
    )
    parser.add_argument(
        "--no-strict",
        dest="strict_relations",
        action="store_const",
        const=False,
        default=None,
        help="Report dangling relations as warnings instead of aborting.",
    )
    parser.add_argument(
        "--allow-partial",
        dest="allow_partial",
        action="store_const",
        const=True,
        default=None,
        help="Exit successfully even if some artifacts failed to generate.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Render everything but write nothing; list the files that would be written.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose DEBUG logging for the generator tool.",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored output (useful for CI/CD environments).",
    )
    return parser


def _resolve_config_path(explicit):
    if explicit:
        return explicit
    default = Path.cwd() / DefaultConfig.CONFIG_FILE_NAME
    return str(default) if default.is_file() else None


def main(argv=None) -> int:
    # --- Argument Parsing ---
    args = build_parser().parse_args(argv)

    # --- Logging Setup ---
    use_colors = not args.no_color
    log_level = logging.DEBUG if args.verbose else logging.INFO
    setup_colored_logging(level=log_level, use_colors=use_colors)

    global logger
    logger = get_colored_logger(__name__)

    if args.verbose:
        logger.debug("Verbose mode enabled. DEBUG level logging activated.")

    # --- Main Execution Pipeline ---
    try:
        # 1. Load Configuration
        log_progress(logger, "Loading configuration...")
        config = load_config(_resolve_config_path(args.config), args)
        log_success(logger, "Configuration loaded and validated successfully.")
        logger.debug(f"Effective configuration loaded: {config}")

        writer = MemoryWriter() if args.dry_run else None
        orchestrator = GenerationOrchestrator(config, writer=writer)

        # 2. Phase A: model analysis
        log_section(logger, "Domain Model Analysis")
        snapshot = orchestrator.prepare()

        # 3. Phase B: artifact generation
        log_section(logger, "Artifact Generation")
        summary = orchestrator.generate(snapshot)
        summary.log()

        if args.dry_run:
            for path in sorted(writer.files):
                logger.info(f"   would write {path}")

        if summary.has_failures and not config.allow_partial:
            logger.error(f"{len(summary.errors)} artifact(s) failed. Re-run with --allow-partial to accept partial output.")
            return EXIT_GENERATION_ERROR

        log_section(logger, "COMPLETION")
        if args.dry_run:
            log_success(logger, f"Dry run finished; {len(writer.files)} file(s) rendered, nothing written")
        else:
            log_success(logger, f"Generated artifacts in {config.output_dir}")
        return EXIT_OK

    # --- Error Handling ---
    except (ConfigurationError, IngestionError) as e:
        logger.error(str(e), exc_info=args.verbose)
        return EXIT_INPUT_ERROR
    except RelationValidationFailed as e:
        logger.error(str(e), exc_info=args.verbose)
        return EXIT_VALIDATION_ERROR
    except KeyboardInterrupt:
        logger.warning("Interrupted; generation stopped.")
        return EXIT_INTERRUPTED
    except Exception as e:
        # Catch any other unexpected exceptions
        logger.error(f"An unexpected error occurred during generation: {e}", exc_info=True)
        return EXIT_INPUT_ERROR


# --- Script Entry Point ---
if __name__ == "__main__":
    sys.exit(main())

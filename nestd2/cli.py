"""CLI entrypoints for nest-d2 commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from . import __version__
from .config import ConfigError, NestD2Config, load_config
from .interactive import (
    FALLBACK_TECHNOLOGY,
    MetadataProvider,
    PromptMetadataProvider,
    StaticMetadataProvider,
)
from .logging import configure_logging
from .orchestrator import ManifestNotFoundError, Orchestrator


def _add_logging_options(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=argparse.SUPPRESS if suppress_default else False,
        help="Increase log verbosity for troubleshooting.",
    )
    parser.add_argument(
        "--log-file",
        default=argparse.SUPPRESS if suppress_default else None,
        help="Also write a debug log to this file.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nest-d2",
        description="Generate D2 diagrams from NestJS projects.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    _add_logging_options(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate_parser = subparsers.add_parser(
        "generate",
        help="Generate component and class diagrams.",
    )
    _add_logging_options(generate_parser, suppress_default=True)
    generate_parser.add_argument(
        "-p",
        "--project",
        default=".",
        help="Path to the NestJS project (defaults to current directory).",
    )
    generate_parser.add_argument(
        "-o",
        "--output",
        default=None,
        help="Output directory for diagrams (defaults to ./diagrams in the project).",
    )
    scope = generate_parser.add_mutually_exclusive_group()
    scope.add_argument(
        "--component-only",
        action="store_true",
        help="Generate only the component diagram.",
    )
    scope.add_argument(
        "--class-only",
        action="store_true",
        help="Generate only the class diagrams.",
    )
    generate_parser.add_argument(
        "-i",
        "--interactive",
        action="store_true",
        help="Prompt for module technology and descriptions.",
    )
    generate_parser.add_argument(
        "--container",
        default=None,
        help="Title of the system container that encloses all modules.",
    )
    generate_parser.add_argument(
        "--config",
        default=None,
        help="Path to a .nestd2.yml file (defaults to the project root).",
    )

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for nest-d2 commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(
        verbose=bool(args.verbose),
        log_file=Path(args.log_file) if args.log_file else None,
    )

    if args.command == "generate":
        project = Path(args.project)
        try:
            config = load_config(Path(args.config) if args.config else project)
        except ConfigError as exc:
            parser.exit(1, f"{exc}\n")

        provider = _build_provider(args, config)

        orchestrator = Orchestrator()
        try:
            outcome = orchestrator.run_generate(
                str(project),
                args.output,
                provider=provider,
                component_only=bool(args.component_only),
                class_only=bool(args.class_only),
                interactive=bool(args.interactive),
                config=config,
            )
        except ManifestNotFoundError as exc:
            parser.exit(1, f"Error: {exc}\n")
        except FileNotFoundError as exc:
            parser.exit(1, f"{exc}\n")
        except Exception as exc:  # pragma: no cover - last-resort exit path
            parser.exit(1, f"nest-d2 generate failed: {exc}\nRun with --verbose for more details.\n")

        if outcome.component_path is not None:
            print(f"Component diagram saved to: {_relativize(outcome.component_path)}")
        if outcome.global_class_path is not None:
            print(f"Global class diagram saved to: {_relativize(outcome.global_class_path)}")
            print(f"Component class diagrams saved: {len(outcome.module_class_paths)}")
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _build_provider(args: argparse.Namespace, config: NestD2Config) -> MetadataProvider:
    container = args.container or config.component.container
    if args.interactive:
        return PromptMetadataProvider(
            container=container,
            initial_technology=config.component.default_technology or FALLBACK_TECHNOLOGY,
        )
    return StaticMetadataProvider(
        container=container,
        default_technology=config.component.default_technology,
        modules=config.modules,
        options=config.class_diagram.to_options(),
    )


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])

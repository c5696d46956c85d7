from __future__ import annotations

import argparse
import importlib
import logging
import sys
from pathlib import Path

from zenwire.builder import ContainerBuilder
from zenwire.config import CompilerConfig
from zenwire.exceptions import ZenwireError, ZenwireInvalidConfigurationError

_DESCRIPTION = "Compile a zenwire dependency injection container."


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="zenwire", description=_DESCRIPTION)
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Log progress; repeat for debug output.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    build_parser = subparsers.add_parser("build", help="Resolve and write a compiled container.")
    build_parser.add_argument(
        "config",
        help=(
            "Compiler configuration as 'module:attribute'. The attribute is a CompilerConfig "
            "or a zero-argument callable returning one."
        ),
    )
    build_parser.add_argument(
        "output_directory",
        type=Path,
        help="Directory the container module and its definition directory are written to.",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=_log_level(args.verbose),
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config(args.config)
        written = ContainerBuilder(config).build(args.output_directory)
    except ZenwireError as error:
        sys.stderr.write(f"zenwire: {error}\n")
        return 1

    for path in written:
        sys.stdout.write(f"{path}\n")
    return 0


def load_config(reference: str) -> CompilerConfig:
    """Load a ``CompilerConfig`` from a ``module:attribute`` reference.

    Args:
        reference: Import path of the module and the attribute name, separated by a colon.

    Raises:
        ZenwireInvalidConfigurationError: If the reference cannot be imported or
            does not produce a ``CompilerConfig``.

    """
    module_name, separator, attribute = reference.partition(":")
    if not separator or not module_name or not attribute:
        msg = f"Expected a configuration reference as 'module:attribute', got '{reference}'."
        raise ZenwireInvalidConfigurationError(msg)

    try:
        module = importlib.import_module(module_name)
    except ImportError as error:
        msg = f"Cannot import configuration module '{module_name}': {error}"
        raise ZenwireInvalidConfigurationError(msg) from error

    value = getattr(module, attribute, None)
    if value is None:
        msg = f"Module '{module_name}' has no attribute '{attribute}'."
        raise ZenwireInvalidConfigurationError(msg)
    if callable(value):
        value = value()
    if not isinstance(value, CompilerConfig):
        msg = f"'{reference}' must be a CompilerConfig, got {type(value).__name__}."
        raise ZenwireInvalidConfigurationError(msg)
    return value


def _log_level(verbosity: int) -> int:
    if verbosity >= 2:  # noqa: PLR2004
        return logging.DEBUG
    if verbosity == 1:
        return logging.INFO
    return logging.WARNING

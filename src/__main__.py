#!/usr/bin/env python3
"""
stencil - Ahead-of-time template compiler

Compiles one template (and every template it extends, includes or imports)
into a standalone Python module exposing render(**context).

As an aside, this codebase leverages the ChRIS "plugin" concept/pattern as
general purpose python app development framework.

Usage:
    stencil inputdir/ outputdir/ --template hello.html

    inputdir is the project root: it holds the configuration document
    (stencil.yaml) and, by default, the templates/ search directory. The
    generated module is written to outputdir/<name>.py.

Examples:
    # Basic compilation
    stencil . build/ --template hello.html --name Hello

    # Explicit configuration document, whitespace override
    stencil . build/ --template page.html --config conf/stencil.yaml --whitespace suppress

    # Render one block only, dump the generated module to stderr
    stencil . build/ --template page.html --block content --print code
"""

import sys
from pathlib import Path
from argparse import ArgumentParser, Namespace, ArgumentDefaultsHelpFormatter

from chris_plugin import chris_plugin
from .lib import LOG, state_connectToLogger, declaration_derive, __version__
from .lib.errors import path_display
from .models import ProgramState, pipeline


DISPLAY_TITLE = r"""
      _                  _ _
  ___| |_ ___ _ __   ___(_) |
 / __| __/ _ \ '_ \ / __| | |
 \__ \ ||  __/ | | | (__| | |
 |___/\__\___|_| |_|\___|_|_|

  Ahead-of-time template compiler
"""

# Define CLI arguments
parser = ArgumentParser(
    description="stencil - compile templates into Python modules",
    formatter_class=ArgumentDefaultsHelpFormatter,
)

parser.add_argument(
    "--template", required=True, type=str, help="Template name, located through the search path"
)

parser.add_argument(
    "--name", default="Template", type=str, help="Name of the generated module"
)

parser.add_argument(
    "--config",
    default=None,
    type=str,
    help="Configuration document relative to inputdir. Defaults to stencil.yaml if present",
)

parser.add_argument(
    "--whitespace",
    default=None,
    choices=["preserve", "suppress", "minimize"],
    help="Override the configured whitespace policy",
)

parser.add_argument(
    "--print",
    default="none",
    choices=["none", "ast", "code", "all"],
    help="Dump the parsed template and/or generated module to stderr",
)

parser.add_argument("--block", default=None, type=str, help="Render only this block")

parser.add_argument(
    "-v",
    "--verbosity",
    action="count",
    default=1,
    help="Increase output verbosity (can be repeated: -v, -vv, -vvv)",
)

parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")


def env_check(inputstate: ProgramState) -> ProgramState:
    """
    Validate the project root and prepare the output location.

    Returns:
        ProgramState with added fields:
            - projectRoot: Absolute project root
            - outputFile: outputdir/<name>.py
            - envOK: True if environment is valid

    Exits:
        1 if the project root does not exist
    """
    state = inputstate.copy()

    if state.verbosity >= 2:
        LOG(DISPLAY_TITLE, level=2)

    LOG("Checking environment...", level=2)

    if state.inputdir is None or not state.inputdir.is_dir():
        print(f"Error: Project root not found: {state.inputdir}", file=sys.stderr)
        state.envOK = False
        sys.exit(1)

    state.projectRoot = state.inputdir.resolve()
    LOG(f"Project root: {state.projectRoot}", level=2)

    state.outputdir.mkdir(parents=True, exist_ok=True)
    state.outputFile = state.outputdir / f"{state.name}.py"
    LOG(f"Output file: {state.outputFile}", level=2)

    state.envOK = True
    return state


def template_compile(inputstate: ProgramState) -> ProgramState:
    """
    Compile the template and write the generated module.

    On failure the fallback module is still written so that code importing
    it keeps working while the error is fixed.

    Returns:
        ProgramState with added field:
            - deriveResult: DeriveResult from the compiler
    """
    state = inputstate.copy()

    LOG(f"Compiling {state.template}...", level=1)

    declaration = {
        "path": state.template,
        "config": state.config,
        "whitespace": state.whitespace,
        "print": state.print,
        "block": state.block,
    }
    state.deriveResult = declaration_derive(
        state.name, declaration, state.projectRoot, state.verbosity
    )
    state_connectToLogger(state)

    if state.deriveResult.code is not None:
        state.outputFile.write_text(state.deriveResult.code, encoding="utf-8")
        LOG(f"Wrote {state.outputFile}", level=2)

    return state


def results_report(inputstate: ProgramState) -> ProgramState:
    """
    Report the outcome.

    Exits:
        1 if compilation failed
    """
    state: ProgramState = inputstate.copy()
    result = state.deriveResult

    if result is None or not result.ok:
        print(f"error: {result.error if result else 'compilation did not run'}", file=sys.stderr)
        sys.exit(1)

    LOG("\n✓ Compilation successful!", level=1)
    LOG(f"  Output: {path_display(state.outputFile)}", level=1)
    return state


@chris_plugin(
    parser=parser,
    title="stencil - Ahead-of-time template compiler",
    category="Utility",
    min_memory_limit="100Mi",
    min_cpu_limit="500m",
)
def main(options: Namespace, inputdir: Path, outputdir: Path):
    """
    Main entry point - compile one template into a Python module.

    Orchestrates:
        1. env_check: Validate the project root, prepare the output path
        2. template_compile: Run the compiler (with fallback) and write output
        3. results_report: Report success or print the error and exit 1

    Args:
        options: CLI arguments from argparse
        inputdir: Project root
        outputdir: Directory receiving the generated module
    """
    state: ProgramState = ProgramState.state_createFromNamespace(
        options=options, inputdir=inputdir, outputdir=outputdir
    )

    state_connectToLogger(state)

    pipeline(state, env_check, template_compile, results_report)


if __name__ == "__main__":
    main()  # type: ignore  # @chris_plugin decorator transforms signature

"""
Program state models and pipeline helper

Defines the state containers for the functional pipeline pattern and the
pipeline() helper for composing transformation stages. ProgramState carries
the command line run; CompileState carries one template compilation.
"""

from pathlib import Path
from argparse import Namespace
from typing import Any, Optional, Type, TypeVar, Dict, Callable, TYPE_CHECKING
from dataclasses import dataclass, field

from .template import TemplateArgs

# Forward references for type hints - avoid circular import
if TYPE_CHECKING:
    from ..lib.config import Configuration
    from ..lib.heritage import Context, Heritage
    from ..lib.input import TemplateInput
    from .parser import Parsed


PS = TypeVar("PS", bound="ProgramState")
CS = TypeVar("CS", bound="CompileState")


@dataclass
class ProgramState:
    """
    Central state container for the command line run (state bus pattern).

    Pipeline stages and their state additions:
        - Initial: inputdir, outputdir, verbosity, template, name, config,
          whitespace, print, block
        - env_check: projectRoot, outputFile, envOK
        - template_compile: deriveResult
        - results_report: (no additions, terminal stage)

    Attributes:
        inputdir: Project root (holds the configuration document)
        outputdir: Directory receiving the generated module
        verbosity: Logging verbosity level (1-3)
        template: Template file name, located through the search path
        name: Identifier of the generated artifact
        config: Optional configuration document path (relative to inputdir)
        whitespace: Optional whitespace policy override
        print: Diagnostic print mode
        block: Optional block selector
        envOK: Environment validation passed
        projectRoot: Resolved absolute project root
        outputFile: Path of the generated module
        deriveResult: DeriveResult from the compiler
    """

    # CLI arguments
    inputdir: Optional[Path] = field(default=None)
    outputdir: Optional[Path] = field(default=None)
    verbosity: int = field(default=1)
    template: str = field(default="")
    name: str = field(default="Template")
    config: Optional[str] = field(default=None)
    whitespace: Optional[str] = field(default=None)
    print: str = field(default="none")
    block: Optional[str] = field(default=None)

    # Pipeline state
    envOK: bool = field(default=False)
    projectRoot: Path = field(default=Path("/"))
    outputFile: Path = field(default=Path("/"))
    deriveResult: Optional[Any] = field(default=None)  # DeriveResult at runtime

    @classmethod
    def state_createFromNamespace(
        cls: Type["ProgramState"], options: Namespace, inputdir: Path, outputdir: Path
    ) -> "ProgramState":
        """
        Create ProgramState from argparse Namespace and directory paths.

        Args:
            options: Parsed CLI arguments (template, name, config, etc.)
            inputdir: Project root
            outputdir: Directory for the generated module

        Returns:
            ProgramState instance with all CLI options as attributes
        """
        options_dict = vars(options)

        import dataclasses
        valid_fields = {f.name for f in dataclasses.fields(cls)}

        # Only keep options that are ProgramState fields
        filtered_options = {k: v for k, v in options_dict.items() if k in valid_fields}

        merged_args = {**filtered_options, "inputdir": inputdir, "outputdir": outputdir}
        return cls(**merged_args)

    def copy(self: PS) -> PS:
        """
        Creates a shallow copy of the ProgramState instance.

        Returns:
            A new ProgramState instance.
        """
        return type(self)(**self.__dict__)


@dataclass
class CompileState:
    """
    State container for one template compilation.

    Pipeline stages and their state additions:
        - Initial: root, args, verbosity
        - config_load: config
        - input_resolve: input
        - templates_discover: templates
        - contexts_build: contexts
        - heritage_build: heritage (None when the root declares no blocks
          and extends nothing)
        - code_generate: code

    Every invocation owns its state; nothing here is shared between
    compilations.
    """

    root: Path
    args: TemplateArgs
    verbosity: int = field(default=1)

    config: Optional["Configuration"] = field(default=None)
    input: Optional["TemplateInput"] = field(default=None)
    templates: Dict[Path, "Parsed"] = field(default_factory=dict)
    contexts: Dict[Path, "Context"] = field(default_factory=dict)
    heritage: Optional["Heritage"] = field(default=None)
    code: Optional[str] = field(default=None)

    def copy(self: CS) -> CS:
        """Shallow copy; stages never mutate the state they receive"""
        return type(self)(**self.__dict__)


def pipeline(initial_state: Any, *stages: Callable[[Any], Any]) -> Any:
    """
    Execute a functional pipeline of state transformations.

    Each stage is a function (state) -> state that receives the output of
    the previous stage and returns a new state. A stage that raises stops
    the pipeline; later stages never run.

    Args:
        initial_state: Starting state
        *stages: Variable number of stage functions to execute in order

    Returns:
        Final state after all transformations

    Example:
        final_state = pipeline(
            initial_state,
            env_check,
            template_compile,
            results_report
        )

    This is equivalent to:
        results_report(template_compile(env_check(initial_state)))

    But reads left-to-right instead of inside-out.
    """
    from functools import reduce
    return reduce(lambda state, stage: stage(state), stages, initial_state)

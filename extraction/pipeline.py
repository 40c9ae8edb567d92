"""
End-to-end documentation extraction.

Opens a compiler session, resolves the inputs to an ordered module list,
parses, typechecks and loads each module, and extracts its documentation.
Everything runs inside one error boundary: interrupts propagate as they
are, every other failure is reported as ``ExtractError``.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import threading
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Iterable, Iterator, List, Optional, Sequence

from core.structured_logging import module_scope, phase_scope
from extraction.config import BUG_REPORT_NOTE, TEMP_DIR_PREFIX
from extraction.extractor import extract_from_module
from extraction.models import ModuleDoc
from extraction.resolver import resolve
from extraction.util import convert_dos_line_endings
from frontend.errors import FrontendPanic
from frontend.session import Session, TypecheckedModule, with_session

if TYPE_CHECKING:
    from core.settings import ExtractSettings

logger = logging.getLogger(__name__)


class ExtractionCancelled(KeyboardInterrupt):
    """Raised when the caller's cancel event is set during a run."""


class ExtractError(Exception):
    """Any failure during extraction that is not an interrupt.

    Attributes:
        cause: The original exception.
    """

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(self.format_message(cause))

    @staticmethod
    def format_message(cause: BaseException) -> str:
        if isinstance(cause, FrontendPanic):
            detail = f"Frontend panic: {cause.message}"
        else:
            detail = str(cause) or type(cause).__name__
        return "\n".join([
            "Hit an error while extracting documentation.",
            "",
            "    " + detail,
            "",
            BUG_REPORT_NOTE,
        ])


@dataclass(frozen=True)
class ExtractionResult:
    """Outcome of ``try_extract``: either modules or an error."""

    modules: Optional[List[ModuleDoc]] = None
    error: Optional[ExtractError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def check_cancelled(cancel_event: Optional[threading.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise ExtractionCancelled("extraction cancelled")


@contextmanager
def temp_output_dir(
    session: Session,
    root: Optional[str] = None,
    prefix: str = TEMP_DIR_PREFIX,
) -> Iterator[str]:
    """Point the session's build outputs at a scratch directory.

    The directory is ``<root>/<prefix><pid>`` (``root`` defaults to the
    system temp directory). It receives object, interface and stub files,
    is searched first for includes, and is removed on exit.
    """
    path = os.path.join(root or tempfile.gettempdir(), f"{prefix}{os.getpid()}")
    dflags = session.get_session_dyn_flags()
    session.set_session_dyn_flags(
        replace(
            dflags,
            output_dir=path,
            hi_dir=path,
            stub_dir=path,
            include_paths=[path] + list(dflags.include_paths),
        )
    )
    os.mkdir(path)
    logger.debug(f"Created output directory {path}")
    try:
        yield path
    finally:
        shutil.rmtree(path)
        logger.debug(f"Removed output directory {path}")


def parse(
    args: Sequence[str],
    settings: ExtractSettings,
    cancel_event: Optional[threading.Event] = None,
) -> List[TypecheckedModule]:
    """Typecheck and load the modules named by ``args`` in dependency order.

    Args:
        args: Frontend flags mixed with input files or module names.
        settings: Extraction settings.
        cancel_event: Checked before each module; when set the run stops
            with ``ExtractionCancelled``.

    Returns:
        Typechecked modules, each after the modules it imports.
    """
    with with_session(args) as (session, inputs):
        with temp_output_dir(session, settings.temp_dir_root, settings.temp_dir_prefix):
            with phase_scope("resolve"):
                summaries = resolve(session, inputs, settings.object_suffix)

            modules: List[TypecheckedModule] = []
            with phase_scope("typecheck"):
                for summary in summaries:
                    check_cancelled(cancel_event)
                    with module_scope(summary.module_name):
                        parsed = session.parse_module(summary)
                        typechecked = session.typecheck_module(parsed)
                        modules.append(session.load_module(typechecked))
            return modules


def iter_module_docs(
    modules: Iterable[TypecheckedModule],
    settings: ExtractSettings,
    cancel_event: Optional[threading.Event] = None,
) -> Iterator[ModuleDoc]:
    """Lazily extract each module's documentation, normalizing line endings."""
    with phase_scope("extract"):
        for module in modules:
            check_cancelled(cancel_event)
            with module_scope(module.module_name):
                doc = extract_from_module(
                    module.parsed_module,
                    setup_anchor=settings.setup_anchor,
                    strict_setup=settings.strict_setup,
                )
                yield doc.map_text(convert_dos_line_endings)


def extract(
    args: Sequence[str],
    settings: Optional[ExtractSettings] = None,
    cancel_event: Optional[threading.Event] = None,
) -> List[ModuleDoc]:
    """Extract the documentation of the given modules and their local imports.

    Args:
        args: Frontend flags mixed with input files or module names.
        settings: Extraction settings; defaults when ``None``.
        cancel_event: Optional cooperative cancellation flag.

    Returns:
        One ModuleDoc per module, each after the modules it imports.

    Raises:
        ExtractError: On any failure other than an interrupt.
        KeyboardInterrupt: Including ``ExtractionCancelled``; never wrapped.
        SystemExit: Never wrapped.

    Example:
        >>> docs = extract(["-isrc", "src/B.hs"])  # doctest: +SKIP
        >>> [d.module_name for d in docs]  # doctest: +SKIP
        ['A', 'B']
    """
    from core.settings import ExtractSettings

    settings = settings or ExtractSettings()
    try:
        modules = parse(args, settings, cancel_event)
        docs = list(iter_module_docs(modules, settings, cancel_event))
    except (KeyboardInterrupt, SystemExit):
        raise
    except Exception as exc:
        logger.error("Extraction failed: %s", exc, exc_info=True)
        raise ExtractError(exc) from exc
    logger.info(
        "Extracted %d doc item(s) from %d module(s)",
        sum(len(d.items) for d in docs),
        len(docs),
    )
    return docs


def try_extract(
    args: Sequence[str],
    settings: Optional[ExtractSettings] = None,
    cancel_event: Optional[threading.Event] = None,
) -> ExtractionResult:
    """Like ``extract``, but return failures instead of raising them.

    Interrupts and cancellation still propagate.
    """
    try:
        return ExtractionResult(modules=extract(args, settings, cancel_event))
    except ExtractError as exc:
        return ExtractionResult(error=exc)

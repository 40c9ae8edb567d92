"""
Integration tests for pipeline.py

Runs the whole extraction over small module trees on disk.
"""

import os
import tempfile
import threading
import unittest
from pathlib import Path
from unittest import mock

from core.settings import ExtractSettings
from extraction.config import BUG_REPORT_NOTE
from extraction.extractor import DuplicateSetupError
from extraction.pipeline import (
    ExtractError,
    ExtractionCancelled,
    extract,
    temp_output_dir,
    try_extract,
)
from frontend.errors import CmdLineError, FrontendError, FrontendPanic
from frontend.session import Session, parse_flags

FIXTURES = Path(__file__).resolve().parent / "fixtures"
BASIC = FIXTURES / "basic"


def _summary(docs):
    return [
        (
            doc.module_name,
            None if doc.setup is None else (doc.setup.anchor_name, doc.setup.text),
            [(item.anchor_name, item.text) for item in doc.content],
        )
        for doc in docs
    ]


EXPECTED_BASIC = [
    ("A", None, [(None, " doc for foo")]),
    ("B", ("setup", "\n import A"), [(None, " module B")]),
]


class PipelineTestCase(unittest.TestCase):
    """Runs with the scratch directory under a per-test temp root."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.temp_root = self._tmp.name
        self.settings = ExtractSettings(temp_dir_root=self.temp_root)

    def tearDown(self):
        self._tmp.cleanup()

    def assertScratchRemoved(self):
        self.assertEqual(os.listdir(self.temp_root), [])


class TestExtract(PipelineTestCase):
    """Successful runs."""

    def test_basic_both_input_orders(self):
        for inputs in (["B.hs"], ["A.hs", "B.hs"], ["B.hs", "A.hs"]):
            args = [f"-i{BASIC}"] + [str(BASIC / name) for name in inputs]
            docs = extract(args, self.settings)
            self.assertEqual(_summary(docs), EXPECTED_BASIC, inputs)
        self.assertScratchRemoved()

    def test_module_name_input(self):
        docs = extract([f"-i{BASIC}", "B"], self.settings)
        self.assertEqual([doc.module_name for doc in docs], ["A", "B"])

    def test_object_inputs_ignored(self):
        docs = extract([f"-i{BASIC}", "B", str(BASIC / "A.o")], self.settings)
        self.assertEqual(_summary(docs), EXPECTED_BASIC)

    def test_template_haskell_modules(self):
        th = FIXTURES / "th"
        docs = extract([f"-i{th}", str(th / "Gen.hs")], self.settings)
        self.assertEqual(
            _summary(docs),
            [
                ("Lib", None, [(None, " A helper used at compile time.")]),
                ("Gen", None, [(None, " Generated code."), (None, " Uses the helper.")]),
            ],
        )
        self.assertScratchRemoved()

    def test_import_cycle(self):
        cycle = FIXTURES / "cycle"
        docs = extract([f"-i{cycle}", str(cycle / "P.hs")], self.settings)
        self.assertEqual(
            _summary(docs),
            [("P", None, [(None, " p doc")]), ("Q", None, [(None, " q doc")])],
        )

    def test_dos_line_endings_normalized(self):
        with tempfile.TemporaryDirectory() as src:
            for name in ("A.hs", "B.hs"):
                text = (BASIC / name).read_text(encoding="utf-8")
                with open(os.path.join(src, name), "w", encoding="utf-8", newline="") as f:
                    f.write(text.replace("\n", "\r\n"))
            docs = extract([f"-i{src}", os.path.join(src, "B.hs")], self.settings)
        self.assertEqual(_summary(docs), EXPECTED_BASIC)

    def test_long_import_chain(self):
        depth = 1500
        with tempfile.TemporaryDirectory() as src:
            for i in range(depth):
                imports = f"import M{i + 1}\n" if i + 1 < depth else ""
                with open(os.path.join(src, f"M{i}.hs"), "w", encoding="utf-8") as f:
                    f.write(f"module M{i} where\n{imports}\n-- | doc {i}\nv{i} :: Int\nv{i} = {i}\n")
            docs = extract([f"-i{src}", os.path.join(src, "M0.hs")], self.settings)
        self.assertEqual([doc.module_name for doc in docs], [f"M{i}" for i in reversed(range(depth))])
        self.assertEqual([item.text for item in docs[0].content], [f" doc {depth - 1}"])
        self.assertEqual([item.text for item in docs[-1].content], [" doc 0"])
        self.assertScratchRemoved()

    def test_try_extract_success(self):
        result = try_extract([f"-i{BASIC}", "B"], self.settings)
        self.assertTrue(result.ok)
        self.assertIsNone(result.error)
        self.assertEqual(_summary(result.modules), EXPECTED_BASIC)


class TestExtractErrors(PipelineTestCase):
    """Failures are wrapped; interrupts are not."""

    def test_missing_file(self):
        with self.assertRaises(ExtractError) as ctx:
            extract([str(BASIC / "Missing.hs")], self.settings)
        err = ctx.exception
        self.assertIsInstance(err.cause, FrontendError)
        self.assertIs(err.__cause__, err.cause)
        message = str(err)
        self.assertTrue(message.startswith("Hit an error while extracting documentation.\n\n    "))
        self.assertIn("Missing.hs", message)
        self.assertTrue(message.endswith(BUG_REPORT_NOTE))
        self.assertScratchRemoved()

    def test_bad_flag(self):
        with self.assertRaises(ExtractError) as ctx:
            extract(["-bogus", "B"], self.settings)
        self.assertIsInstance(ctx.exception.cause, CmdLineError)

    def test_cycle_with_object_code(self):
        cycle = FIXTURES / "cycle"
        with self.assertRaises(ExtractError) as ctx:
            extract([f"-i{cycle}", "-fobject-code", str(cycle / "P.hs")], self.settings)
        self.assertIn("cycle", str(ctx.exception))
        self.assertScratchRemoved()

    def test_frontend_panic_message(self):
        with mock.patch.object(Session, "typecheck_module", side_effect=FrontendPanic("lost a module")):
            with self.assertRaises(ExtractError) as ctx:
                extract([f"-i{BASIC}", "B"], self.settings)
        self.assertIn("\n    Frontend panic: lost a module\n", str(ctx.exception))
        self.assertIsInstance(ctx.exception.cause, FrontendPanic)

    def test_duplicate_setup_in_strict_mode(self):
        with tempfile.TemporaryDirectory() as src:
            path = os.path.join(src, "D.hs")
            with open(path, "w", encoding="utf-8") as f:
                f.write("module D where\n-- $setup\n-- one\n\n-- $setup\n-- two\n")
            settings = ExtractSettings(temp_dir_root=self.temp_root, strict_setup=True)
            with self.assertRaises(ExtractError) as ctx:
                extract([path], settings)
            self.assertIsInstance(ctx.exception.cause, DuplicateSetupError)

            docs = extract([path], self.settings)
            self.assertEqual(len(docs[0].content), 1)

    def test_try_extract_failure(self):
        result = try_extract(["Nowhere"], self.settings)
        self.assertFalse(result.ok)
        self.assertIsNone(result.modules)
        self.assertIsInstance(result.error, ExtractError)

    def test_cancel_event(self):
        cancel = threading.Event()
        cancel.set()
        with self.assertRaises(ExtractionCancelled):
            extract([f"-i{BASIC}", "B"], self.settings, cancel_event=cancel)
        self.assertScratchRemoved()

    def test_cancelled_try_extract_propagates(self):
        cancel = threading.Event()
        cancel.set()
        with self.assertRaises(KeyboardInterrupt):
            try_extract([f"-i{BASIC}", "B"], self.settings, cancel_event=cancel)

    def test_keyboard_interrupt_not_wrapped(self):
        with mock.patch.object(Session, "parse_module", side_effect=KeyboardInterrupt):
            with self.assertRaises(KeyboardInterrupt) as ctx:
                extract([f"-i{BASIC}", "B"], self.settings)
        self.assertNotIsInstance(ctx.exception, ExtractError)
        self.assertScratchRemoved()


class TestTempOutputDir(unittest.TestCase):
    def test_session_outputs_point_at_scratch_dir(self):
        with tempfile.TemporaryDirectory() as root:
            session = Session(parse_flags([]))
            with temp_output_dir(session, root, "scratch-") as path:
                self.assertEqual(path, os.path.join(root, f"scratch-{os.getpid()}"))
                self.assertTrue(os.path.isdir(path))
                dflags = session.get_session_dyn_flags()
                self.assertEqual(dflags.output_dir, path)
                self.assertEqual(dflags.hi_dir, path)
                self.assertEqual(dflags.stub_dir, path)
                self.assertEqual(dflags.include_paths[0], path)
            self.assertFalse(os.path.exists(path))

    def test_removed_on_error(self):
        with tempfile.TemporaryDirectory() as root:
            session = Session(parse_flags([]))
            with self.assertRaises(RuntimeError):
                with temp_output_dir(session, root) as path:
                    Path(path, "partial.o").write_text("", encoding="utf-8")
                    raise RuntimeError("boom")
            self.assertEqual(os.listdir(root), [])


if __name__ == "__main__":
    unittest.main()

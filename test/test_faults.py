"""
Fault behavioral tests (codes, options, replacement, triggering, rendering).

Conventions
- Test method names follow CamelCase per project convention.
- The shared error console is swapped for an in-memory one while triggering.
"""
import copy
import io
import unittest
from unittest import TestCase, mock

from rich.console import Console, Group
from rich.panel import Panel

from resolvent import faults
from resolvent.faults import *


class TestFaultCode(TestCase):
    """Behavioral tests for FaultCode."""

    def testNormalizeDefaultsToNumber(self):
        self.assertEqual(FaultCode.UNKNOWN_FLAG.normalize(), "11111")

    def testNormalizeHonorsHostMapping(self):
        main = __import__("__main__")
        with mock.patch.object(main, "__codes__", {FaultCode.CONVERSION: "E-CONV"}, create=True):
            self.assertEqual(FaultCode.CONVERSION.normalize(), "E-CONV")
            self.assertEqual(FaultCode.MISSING_REQUIRED.normalize(), "11311")


class TestResolutionError(TestCase):
    """Behavioral tests for ResolutionError options and rendering."""

    def setUp(self):
        self.fault = UnknownFlagError(
            "unknown flag '--debgu' at first position",
            code=FaultCode.UNKNOWN_FLAG,
            title="unknown flag",
            hint="did you mean '--debug'?",
            token="--debgu",
            index=1,
        )

    def testOptionsAreAttributes(self):
        self.assertEqual(self.fault.token, "--debgu")
        self.assertEqual(self.fault.index, 1)
        self.assertEqual(str(self.fault), "unknown flag '--debgu' at first position")
        with self.assertRaises(AttributeError):
            self.fault.suggestions

    def testOptionsAreReadOnly(self):
        with self.assertRaises(TypeError):
            self.fault.options["token"] = "--other"

    def testReplaceKeepsTypeAndMergesOptions(self):
        replaced = copy.replace(self.fault, shell=True)
        self.assertIsInstance(replaced, UnknownFlagError)
        self.assertEqual(replaced.message, self.fault.message)
        self.assertEqual(replaced.token, "--debgu")
        self.assertTrue(replaced.shell)
        self.assertNotIn("shell", self.fault.options)

    def testRichRendering(self):
        self.assertIsInstance(self.fault.__rich__(), Group)
        self.assertIsInstance(copy.replace(self.fault, fancy=True).__rich__(), Panel)

    def testRenderedText(self):
        output = io.StringIO()
        Console(file=output, width=120).print(copy.replace(self.fault, colorful=False))
        self.assertIn("11111", output.getvalue())
        self.assertIn("Unknown Flag", output.getvalue())
        self.assertIn("did you mean '--debug'?", output.getvalue())

    def testDeclarationErrorsAreValueErrors(self):
        for error in (DuplicateNameError, DuplicateCommandError, RequiredDefaultError, RepeatableArgumentError, ArgumentOrderError):
            self.assertTrue(issubclass(error, DeclarationError))
            self.assertTrue(issubclass(error, ValueError))


class TestTrigger(TestCase):
    """Behavioral tests for trigger()."""

    def setUp(self):
        self.fault = MissingRequiredError("missing required flag '--token'", code=FaultCode.MISSING_REQUIRED)

    def testRaisesOutsideShell(self):
        with self.assertRaises(MissingRequiredError):
            trigger(self.fault)

    def testExitsInShell(self):
        output = io.StringIO()
        with mock.patch.object(faults, "console", Console(file=output, width=120)):
            with self.assertRaises(SystemExit) as context:
                trigger(self.fault, shell=True, colorful=False)
        self.assertEqual(context.exception.code, 1)
        self.assertIn("missing required flag '--token'", output.getvalue())

    def testRejectsOthers(self):
        with self.assertRaises(TypeError):
            trigger(object())


if __name__ == "__main__":
    unittest.main()

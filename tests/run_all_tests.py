#!/usr/bin/env python3
"""
Test runner for Discord Trivia Bot.
Runs the unit and integration suites, or one category of them, and prints a summary.

Usage:
    python tests/run_all_tests.py [category]
"""
import unittest
import sys
import time
from pathlib import Path

# Project root on the path so 'trivia_bot' and 'tests' import
sys.path.insert(0, str(Path(__file__).parent.parent))

TEST_CATEGORIES = {
    'unit': [
        'tests.test_models',
        'tests.test_config_manager',
        'tests.test_question_source',
        'tests.test_quiz_engine',
        'tests.test_session_store',
    ],
    'machine': ['tests.test_session_machine', 'tests.test_dispatcher'],
    'discord': ['tests.test_bot_discord_integration'],
}


def load_suite(module_names):
    """Load the named test modules into one suite."""
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()
    for module_name in module_names:
        try:
            suite.addTest(loader.loadTestsFromName(module_name))
            print(f"✓ Loaded tests from {module_name}")
        except (ImportError, AttributeError) as e:
            print(f"✗ Failed to load {module_name}: {e}")
    return suite


def run_test_suite(module_names=None):
    """Run the selected test modules and print a summary report."""
    if module_names is None:
        module_names = [name for names in TEST_CATEGORIES.values() for name in names]

    print("=" * 70)
    print("Discord Trivia Bot - Test Suite")
    print("=" * 70)

    suite = load_suite(module_names)
    runner = unittest.TextTestRunner(verbosity=2, stream=sys.stdout, buffer=True)

    start_time = time.time()
    result = runner.run(suite)
    end_time = time.time()

    total_tests = result.testsRun
    failures = len(result.failures)
    errors = len(result.errors)
    skipped = len(result.skipped)
    passed = total_tests - failures - errors - skipped

    print("\n" + "=" * 70)
    print("Test Summary Report")
    print("=" * 70)
    print(f"Total Tests Run: {total_tests}")
    print(f"Passed: {passed}")
    print(f"Failed: {failures}")
    print(f"Errors: {errors}")
    print(f"Skipped: {skipped}")
    print(f"Success Rate: {(passed/total_tests)*100:.1f}%" if total_tests > 0 else "N/A")
    print(f"Execution Time: {end_time - start_time:.2f} seconds")

    return failures == 0 and errors == 0


if __name__ == '__main__':
    if len(sys.argv) > 1:
        category = sys.argv[1]
        if category not in TEST_CATEGORIES:
            print(f"Unknown category: {category}")
            print(f"Available categories: {', '.join(TEST_CATEGORIES)}")
            sys.exit(1)
        success = run_test_suite(TEST_CATEGORIES[category])
    else:
        success = run_test_suite()
    sys.exit(0 if success else 1)

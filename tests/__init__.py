"""Cross-package test suites."""

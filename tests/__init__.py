"""Tests - policy_engine test suite."""

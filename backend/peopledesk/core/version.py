"""
Application version management.

Single source of truth for the application version (MAJOR.MINOR.PATCH).
"""

import os

APP_VERSION = "0.4.0"

# Build metadata (can be overridden at build time via environment variable)
BUILD_SHA = os.environ.get("BUILD_SHA", "dev")
BUILD_DATE = os.environ.get("BUILD_DATE", "unknown")


def get_full_version() -> str:
    """Get full version string including build metadata."""
    if BUILD_SHA != "dev":
        return f"{APP_VERSION}+{BUILD_SHA[:8]}"
    return APP_VERSION


def get_version_info() -> dict:
    return {
        "version": APP_VERSION,
        "build_sha": BUILD_SHA,
        "build_date": BUILD_DATE,
        "full_version": get_full_version(),
    }

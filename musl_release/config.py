"""Global configuration constants for the release pipeline.

Defines default paths, the target triple, timeouts and logging settings
used across the pipeline and the command line launcher.
"""

from __future__ import annotations

# Directories, relative to the source root
LOG_DIR_NAME: str = "logs"

# Build target defaults
DEFAULT_TARGET_TRIPLE: str = "x86_64-unknown-linux-musl"
DEFAULT_BINARY_NAME: str = "wol-server"
DEFAULT_BUILD_DIR_NAME: str = "target"
DEFAULT_RELEASE_DIR_NAME: str = "release"
RELEASE_PLATFORM_SUBDIR: str = "linux"
BUILD_PROFILE_DIR: str = "release"
CARGO_MANIFEST_NAME: str = "Cargo.toml"
DOTENV_FILENAME: str = ".env"

# External tools
CONTAINER_RUNTIME: str = "docker"
CROSS_TOOL: str = "cross"
CARGO_TOOL: str = "cargo"
RUSTUP_TOOL: str = "rustup"

# Stage timeouts in seconds; 0 disables the timeout
ENV_CHECK_TIMEOUT: int = 30
PROVISION_TIMEOUT: int = 900
COMPILE_TIMEOUT: int = 3600

# Environment variable names
ENV_PREFIX: str = "MUSL_RELEASE_"
ENV_TARGET: str = ENV_PREFIX + "TARGET"
ENV_BINARY_NAME: str = ENV_PREFIX + "BINARY_NAME"
ENV_BUILD_ROOT: str = ENV_PREFIX + "BUILD_ROOT"
ENV_RELEASE_ROOT: str = ENV_PREFIX + "RELEASE_ROOT"
ENV_ENV_TIMEOUT: str = ENV_PREFIX + "ENV_TIMEOUT"
ENV_PROVISION_TIMEOUT: str = ENV_PREFIX + "PROVISION_TIMEOUT"
ENV_COMPILE_TIMEOUT: str = ENV_PREFIX + "COMPILE_TIMEOUT"

# Run lock
LOCK_FILENAME: str = ".musl-release.lock"

# Logging
LOG_FILENAME: str = "musl_release.log"
LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_LOG_LEVEL: str = "INFO"

# Process exit codes
EXIT_OK: int = 0
EXIT_FAILURE: int = 1
EXIT_USAGE: int = 2
EXIT_INTERRUPTED: int = 130

# UI defaults
LANG: str = "en"

"""
Project-wide constants for cudadeps.

Centralizes environment variable names, artifact tables and the compiler
compatibility table so the discovery modules share one source of truth.
"""

# Technical identifiers (for paths, files)
APP_NAME = "cudadeps"
APP_FOLDER_NAME = "CudaDeps"  # Used in %LOCALAPPDATA%\CudaDeps\
CONFIG_FILENAME = "config.ini"
ARTIFACTS_FOLDER_NAME = "artifacts"
INSTALL_RECORD_FILENAME = "install.json"

# Environment variables read by the resolver
ENV_CUDA_VERSION = "CUDADEPS_CUDA_VERSION"
ENV_USE_BUNDLES = "CUDADEPS_USE_BUNDLES"
ENV_BUNDLE_DIR = "CUDADEPS_BUNDLE_DIR"
ENV_CONFIG = "CUDADEPS_CONFIG"
ENV_LOG_LEVEL = "CUDADEPS_LOG_LEVEL"

# Toolkit root overrides, in priority order
TOOLKIT_ENV_VARS = ("CUDA_PATH", "CUDA_HOME", "CUDA_ROOT")

# Known toolkit releases, newest first; decorates versioned runtime library names (cudart64_102.dll)
CUDA_TOOLKIT_RELEASES = (
    "13.0", "12.9", "12.8", "12.6", "12.5", "12.4", "12.3", "12.2", "12.1", "12.0",
    "11.8", "11.7", "11.6", "11.5", "11.4", "11.3", "11.2", "11.1", "11.0",
    "10.2", "10.1", "10.0", "9.2", "9.1", "9.0", "8.0", "7.5", "7.0", "6.5", "6.0", "5.5",
)

# Releases for which pre-packaged bundles exist, newest first
CUDA_BUNDLE_RELEASES = ("10.2", "10.1", "10.0", "9.2", "9.0")
CUDNN_BUNDLE_RELEASES = ("10.2", "10.1", "10.0", "9.2", "9.0")
CUTENSOR_BUNDLE_RELEASES = ("10.2", "10.1")

# Major versions tried when decorating local optional library names (libcudnn.so.8)
CUDNN_LIBRARY_MAJORS = ("9", "8", "7")
CUTENSOR_LIBRARY_MAJORS = ("2", "1")

# Artifact name templates, formatted with the toolkit release ("10.2")
CUDA_ARTIFACT = "CUDA{release}"
CUDNN_ARTIFACT = "CUDNN+CUDA{release}"
CUTENSOR_ARTIFACT = "CUTENSOR+CUDA{release}"

# Toolkit binaries
NVCC = "nvcc"
NVDISASM = "nvdisasm"
NVIDIA_SMI = "nvidia-smi"

# Oldest optional library versions that are supported
MIN_CUDNN_VERSION = "7.6"
MIN_CUTENSOR_VERSION = "1.0"

# Maximum GCC major version supported by each CUDA release
GCC_MAX_MAJOR_FOR_CUDA = {
    "5.5": 4,
    "6.0": 4,
    "6.5": 4,
    "7.0": 4,
    "7.5": 4,
    "8.0": 5,
    "9.0": 6,
    "9.1": 6,
    "9.2": 7,
    "10.0": 7,
    "10.1": 8,
    "10.2": 8,
    "11.0": 9,
    "11.1": 10,
    "11.2": 10,
    "11.3": 10,
    "11.4": 11,
    "11.5": 11,
    "11.6": 11,
    "11.7": 11,
    "11.8": 11,
    "12.0": 12,
    "12.1": 12,
    "12.2": 12,
    "12.3": 12,
    "12.4": 13,
    "12.5": 13,
    "12.6": 13,
    "12.8": 14,
}

# Range of GCC majors probed when enumerating versioned compiler names
GCC_PROBE_MAJORS = range(3, 15)
GCC_PROBE_MINORS = range(0, 10)

# Visual Studio tool variables, newest first
VS_COMNTOOLS_VARS = ("VS140COMNTOOLS", "VS120COMNTOOLS", "VS110COMNTOOLS", "VS100COMNTOOLS")

# Default timeout for version probes (seconds)
DEFAULT_PROBE_TIMEOUT = 30.0

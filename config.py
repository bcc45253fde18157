"""
Chain Tutor - Configuration
Provider settings, approval policy, and logging constants
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# =============================================================================
# PATHS
# =============================================================================
PROJECT_ROOT = Path(__file__).parent
LOGS_DIR = Path(os.getenv("LOGS_DIR", str(PROJECT_ROOT / "logs")))
DIAGNOSTIC_LOG_PATH = LOGS_DIR / "diagnostic.log"

# =============================================================================
# VERSION
# =============================================================================
VERSION = "0.1.0"
PROJECT_NAME = "Chain Tutor"

# =============================================================================
# LLM CONFIGURATION
# =============================================================================
# Routing
# Primary provider for conversation turns: 'ollama', 'replicate' or 'anthropic'
LLM_PRIMARY_PROVIDER = os.getenv("LLM_PRIMARY_PROVIDER", "ollama")
# Tried once when the primary provider fails. Empty string disables fallback.
LLM_FALLBACK_PROVIDER = os.getenv("LLM_FALLBACK_PROVIDER", "")

# Sampling defaults shared by all providers
LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.7"))
LLM_TOP_P = float(os.getenv("LLM_TOP_P", "0.9"))
LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "2000"))

# Ollama (local Llama 3.2)
OLLAMA_API_URL = os.getenv("OLLAMA_API_URL", "http://localhost:11434")
OLLAMA_MODEL = os.getenv("OLLAMA_MODEL", "llama3.2")
OLLAMA_TIMEOUT = int(os.getenv("OLLAMA_TIMEOUT", "120"))

# Replicate (hosted Flock Web3 model)
REPLICATE_API_URL = os.getenv("REPLICATE_API_URL", "https://api.replicate.com/v1/predictions")
REPLICATE_API_TOKEN = os.getenv("REPLICATE_API_TOKEN", "")
REPLICATE_MODEL_VERSION = os.getenv(
    "REPLICATE_MODEL_VERSION",
    "3babfa32ab245cf8e047ff7366bcb4d5a2b4f0f108f504c47d5a84e23c02ff5f"
)
REPLICATE_TIMEOUT = int(os.getenv("REPLICATE_TIMEOUT", "60"))
# Predictions still "starting"/"processing" are polled with a fixed bound
REPLICATE_POLL_MAX_ATTEMPTS = 50
REPLICATE_POLL_DELAY = 1.0              # Seconds between polls

# Anthropic (hosted Claude)
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY", "")
ANTHROPIC_MODEL = os.getenv("ANTHROPIC_MODEL", "claude-sonnet-4-5-20250929")
ANTHROPIC_MAX_TOKENS = int(os.getenv("ANTHROPIC_MAX_TOKENS", "2000"))
ANTHROPIC_TIMEOUT = int(os.getenv("ANTHROPIC_TIMEOUT", "120"))

# API Retry (transient errors: 500, 502, 503, timeouts)
API_RETRY_MAX_ATTEMPTS = 3              # Max attempts for transient API errors
API_RETRY_INITIAL_DELAY = 1.0           # Initial backoff delay in seconds
API_RETRY_BACKOFF_MULTIPLIER = 2.0      # Exponential backoff multiplier

# =============================================================================
# FUNCTION CALLING
# =============================================================================
# Read-only capabilities run without asking the learner first.
# Mutating capabilities always wait for an explicit approval.
AUTO_APPROVE_READ_ONLY = os.getenv("AUTO_APPROVE_READ_ONLY", "true").lower() == "true"

# =============================================================================
# WALLET / CHAIN
# =============================================================================
WALLET_ADDRESS = os.getenv("WALLET_ADDRESS", "")
CHAIN_ID = int(os.getenv("CHAIN_ID", "1"))
# Symbol shown when a capability targets token_address == "native"
NATIVE_TOKEN_SYMBOL = os.getenv("NATIVE_TOKEN_SYMBOL", "ETH")

# =============================================================================
# LOGGING
# =============================================================================
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_TO_FILE = os.getenv("LOG_TO_FILE", "true").lower() == "true"
LOG_TO_CONSOLE = True

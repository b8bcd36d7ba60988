"""Chain SDK constants shared by the engine, resolver and validators.

Several constants can be overridden via environment variables so that
deployments can adjust behaviour without code changes.
"""

import os
from pathlib import Path

# User ID the bot sends its messages as.
# Overridable via VOTEBOT_BOT_USER_ID env var.
BOT_USER_ID = int(os.getenv("VOTEBOT_BOT_USER_ID", "1"))

# Chain started for a user who texts in without an existing conversation.
DEFAULT_CHAIN = os.getenv("VOTEBOT_DEFAULT_CHAIN", "vote_1")

# Start step used when a conversation is started on someone's behalf
# (the "refer a friend" flow).
REFERRAL_START_STEP = os.getenv("VOTEBOT_REFERRAL_START_STEP", "intro_refer")

# Upper bound on pre-transition redirects while resolving a single turn.
# A chain whose hooks keep pointing at each other fails with a
# ConfigurationError instead of recursing forever.
MAX_REDIRECTS = int(os.getenv("VOTEBOT_MAX_REDIRECTS", "32"))

# Directory holding the chain YAML files.  Defaults to the packaged chains/.
CHAINS_DIR = Path(os.getenv("VOTEBOT_CHAINS_DIR") or Path(__file__).parent / "chains")

# Postal-code lookup service (zippopotam.us compatible).
ZIP_LOOKUP_URL = os.getenv("VOTEBOT_ZIP_LOOKUP_URL", "https://api.zippopotam.us/us")
LOOKUP_TIMEOUT = float(os.getenv("VOTEBOT_LOOKUP_TIMEOUT", "5"))

# Default dotted store path for a step's answer: user.settings.<step name>.
DEFAULT_STORE_PREFIX = "user.settings."

# Steps a submission receipt moves the conversation to, by outcome.
# A failed NVRA submission falls back to a paper form.
RECEIPT_SUCCESS_STEP = "processed"
RECEIPT_PAPER_FORM_STEP = "incomplete"
RECEIPT_FAILURE_STEP = "submit"

# --- Outbound texts ---
RETRY_SUFFIX = "Please try again!"
APOLOGY_MESSAGE = "I seem to have had a glitch. Please send your last message again."
NOT_ELIGIBLE_MESSAGE = "Sorry, you are not eligible to vote in your state"

"""Constants for the scenecode response pipeline"""  # noqa: D415

# Control markers the assistant is instructed to emit
INSERT_CODE_OPEN = "[INSERT_CODE]"
INSERT_CODE_CLOSE = "[/INSERT_CODE]"
RUN_SCENE = "[RUN_SCENE]"
RUN_SCENE_CLOSE = "[/RUN_SCENE]"
CONTROL_MARKERS = (INSERT_CODE_OPEN, INSERT_CODE_CLOSE, RUN_SCENE, RUN_SCENE_CLOSE)

# Fenced code blocks
FENCE = "```"
FENCE_LANGUAGES = ("javascript", "typescript", "js", "ts")

# Response processing defaults
MIN_RESPONSE_LENGTH = 100
STALL_TIMEOUT_SECONDS = 30.0
MAX_RETRIES = 1
EMPTY_RETRY_DELAY = 2.0
RETRY_BASE_DELAY = 2.0
MAX_RESPONSE_CHARS = 1_000_000
ABRUPT_ENDING_WINDOW = 10

# Provider defaults
DEFAULT_MODEL = "meta-llama/Llama-3.3-70B-Instruct-Turbo"
DEFAULT_BASE_URL = "https://api.together.xyz/v1"
DEFAULT_TEMPERATURE = 0.7
DEFAULT_TOP_P = 0.9
REQUEST_TIMEOUT_SECONDS = 60.0

# Conversation history kept per session (user + assistant messages)
MAX_HISTORY_MESSAGES = 20

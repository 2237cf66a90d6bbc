"""Global constants for codetab."""

# Editor server defaults

DEFAULT_PORT = 3080
DEFAULT_HOST = "localhost"

# Ports tried after the preferred one before asking the OS for any free port
PORT_SCAN_SPAN = 20

# Binaries
CODE_SERVER_BINARY = "code-server"
CODE_TUNNEL_BINARY = "code"

# Tunnel
TUNNEL_BASE_URL = "https://vscode.dev/tunnel"

# Startup timing (seconds)
DEFAULT_WAIT_TIMEOUT = 20.0
DEFAULT_WAIT_INTERVAL = 0.5
DEFAULT_SETTLE_DELAY = 2.0

# Devtools tab identity
TAB_NAME = "builtin-vscode"
TAB_TITLE = "VS Code"
TAB_ICON = "i-bxl-visual-studio"

INSTALL_GUIDE_URL = "https://code.visualstudio.com/blogs/2022/07/07/vscode-server"

# Environment variable prefix for configuration overrides
ENV_PREFIX = "CODETAB_"

"""
Global constants for the application.
"""

SERVICE_NAME = "mcp-servers"
SERVER_NAME = "unified-mcp-servers"
SERVER_VERSION = "1.0.0"

# Environment variable names of the provider credentials
CONTEXT7_KEY_ENV = "CONTEXT7_API_KEY"
PERPLEXITY_KEY_ENV = "PERPLEXITY_API_KEY"
BRIGHTDATA_TOKEN_ENV = "BRIGHTDATA_API_TOKEN"

from pathlib import Path

# Repo-root conventional directories/files (overrideable on the command line)
CONFIG_DIR = Path("configs")
STORE_CONFIG_FILE = CONFIG_DIR / "store.yaml"

DEFAULT_DATABASE_URL = "sqlite:///terms.db"
DEFAULT_TABLE_PREFIX = "wp_"

# Environment variable that overrides database_url from store.yaml
DATABASE_URL_ENV = "TERMS_DATABASE_URL"

import stat


# Cipher layout: IV(16) || AES-CBC ciphertext (N * 16) || HMAC-SHA256(32)
BLOCK_SIZE = 16
IV_SIZE = BLOCK_SIZE
MAC_SIZE = 32
KEY_SIZES = (16, 24, 32)
MIN_CIPHERTEXT_SIZE = IV_SIZE + BLOCK_SIZE + MAC_SIZE  # 64

# Argon2id parameters for password-derived keys
SALT_SIZE = 16
DERIVED_KEY_SIZE = 32
ARGON_TIME_COST = 3
ARGON_MEMORY_COST_KIB = 64 * 1024  # 64 MiB
ARGON_PARALLELISM = 4

# Virtual filesystem modes (read-only tree)
MODE_FILE = stat.S_IFREG | 0o444
MODE_DIR = stat.S_IFDIR | 0o444

# Generated module defaults
DEFAULT_VARIABLE = "ASSETS"
DEFAULT_PORT = 8080
KEY_ENV_VAR = "BINASSETS_KEY"

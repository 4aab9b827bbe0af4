class BinAssetsError(Exception):
    """Base class for binassets-specific errors."""


# Cipher
class InvalidKeyLength(BinAssetsError, ValueError):
    pass


class InvalidKeyMaterial(BinAssetsError, ValueError):
    pass


class InvalidCiphertextLength(BinAssetsError, ValueError):
    pass


class AuthenticationFailed(BinAssetsError):
    pass


class MalformedPadding(BinAssetsError, ValueError):
    pass


# Virtual filesystem
class NotFound(BinAssetsError, FileNotFoundError):
    pass


class EndOfFile(BinAssetsError, EOFError):
    pass


class EndOfListing(BinAssetsError, EOFError):
    pass


# Packer/writer
class InvalidOutputPath(BinAssetsError, ValueError):
    pass

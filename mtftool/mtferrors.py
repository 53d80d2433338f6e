class MTFError(Exception):
    pass

class OpenError(MTFError):
    """Archive or output file cannot be opened/created."""

class ReadError(MTFError):
    """Short or failed read from the archive."""

class EmptyArchiveError(MTFError):
    """Entry table declares zero files."""

class DirectoryError(MTFError):
    """Output directory cannot be created, or a file is in the way."""

class SizeMismatchError(MTFError):
    """Token stream expands past the declared decompressed size."""

class BackReferenceError(MTFError):
    """Back-reference points before the start of the output."""

class WriteError(MTFError):
    """Short write to an output file."""

class ExtractionAborted(MTFError):
    def __init__(self, message, files_extracted=0, failures=()):
        super().__init__(message)
        self.files_extracted = files_extracted
        self.failures = list(failures)

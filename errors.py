"""Exceptions raised by the codebook and transliteration layers."""


class AutolangError(Exception):
    pass


class DirectionError(AutolangError, TypeError):
    """A SourceRef was fed to decode, or a TargetRef to encode."""


class CodebookError(AutolangError):
    pass


class CodebookFormatError(CodebookError, ValueError):
    """A persisted codebook document does not describe a valid tree."""


class UnresolvedSymbolError(AutolangError):
    def __init__(self, token):
        super().__init__(f"no leaf holds {token!r}")
        self.token = token


class UnresolvedCodeError(AutolangError):
    def __init__(self, pending):
        super().__init__(f"input ended inside a partial code: {[t.index for t in pending]}")
        self.pending = list(pending)

from __future__ import annotations


class LedgerError(RuntimeError):
    code = "ledger_error"

    def __init__(self, code: str | None = None, detail: str | None = None):
        if code is not None:
            self.code = code
        self.detail = detail
        super().__init__(self.code if detail is None else f"{self.code}: {detail}")


class ExtractionError(LedgerError):
    code = "statement_parse_failed"


class EmptyInputError(LedgerError):
    code = "no_statements"


class RateFetchError(LedgerError):
    code = "rate_fetch_failed"

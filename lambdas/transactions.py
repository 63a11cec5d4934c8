"""
Transaction CSV parsing and aggregation.

Shared by the Lambda functions. Input rows look like:

    id,type,amount,date
    1,Debit,100.00,2024-01-15

Only the type, amount and the YYYY-MM prefix of the date are used.
"""

import csv
import io
import math
from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation

DEBIT = 'debit'
CREDIT = 'credit'
MONTH_KEY_LENGTH = 7


class SummaryPipelineError(Exception):
    """Base error. `stage` is filled in by the orchestrator."""

    def __init__(self, message, stage=None):
        super().__init__(message)
        self.stage = stage


class SourceUnavailableError(SummaryPipelineError):
    pass


class ParseError(SummaryPipelineError):
    def __init__(self, message, row_index=None, row=None):
        super().__init__(f"row {row_index}: {message} ({row!r})")
        self.row_index = row_index
        self.row = row


class MalformedRowError(ParseError):
    pass


class InvalidDateError(MalformedRowError):
    pass


class InvalidTransactionTypeError(ParseError):
    pass


class InvalidAmountError(ParseError):
    pass


class DispatchError(SummaryPipelineError):
    def __init__(self, target, message):
        super().__init__(f"dispatch to {target} failed: {message}", stage=target)
        self.target = target


class BatchProcessingError(SummaryPipelineError):
    """One or more objects of an S3 event batch failed."""

    def __init__(self, failures):
        keys = ', '.join(f['key'] for f in failures)
        super().__init__(f"{len(failures)} object(s) failed: {keys}")
        self.failures = failures


@dataclass(frozen=True)
class TransactionRecord:
    type: str
    amount: Decimal
    date: str

    @property
    def month(self):
        return self.date[:MONTH_KEY_LENGTH]


@dataclass(frozen=True)
class SummaryData:
    debit_total: Decimal = Decimal('0')
    credit_total: Decimal = Decimal('0')
    total_balance: Decimal = Decimal('0')
    transactions_by_month: dict = field(default_factory=dict)
    # Running sums per month, not averages.
    avg_credits_by_month: dict = field(default_factory=dict)
    avg_debits_by_month: dict = field(default_factory=dict)

    def to_payload(self):
        """Flat JSON-serializable dict sent to the downstream functions."""
        return {
            'debit_total': float(self.debit_total),
            'credit_total': float(self.credit_total),
            'total_balance': float(self.total_balance),
            'transactions_by_month': dict(self.transactions_by_month),
            'avg_credits_by_month': {m: float(v) for m, v in self.avg_credits_by_month.items()},
            'avg_debits_by_month': {m: float(v) for m, v in self.avg_debits_by_month.items()},
        }

    @classmethod
    def from_payload(cls, payload):
        """Accepts both the full payload and the reduced debit/credit-only one."""
        debit = _to_decimal(payload.get('debit_total', 0))
        credit = _to_decimal(payload.get('credit_total', 0))
        balance = payload.get('total_balance')
        return cls(
            debit_total=debit,
            credit_total=credit,
            total_balance=credit + debit if balance is None else _to_decimal(balance),
            transactions_by_month={m: int(c) for m, c in (payload.get('transactions_by_month') or {}).items()},
            avg_credits_by_month={m: _to_decimal(v) for m, v in (payload.get('avg_credits_by_month') or {}).items()},
            avg_debits_by_month={m: _to_decimal(v) for m, v in (payload.get('avg_debits_by_month') or {}).items()},
        )


def _to_decimal(value):
    # str() first so floats from JSON keep their short repr
    return Decimal(str(value))


def _read_row(reader):
    try:
        return next(reader)
    except csv.Error as e:
        raise MalformedRowError(f"failed to read record: {e}", row_index=reader.line_num, row=None) from e


def _parse_amount(raw, index, row):
    # Decimal() would accept padding and digit separators
    if raw != raw.strip() or '_' in raw:
        raise InvalidAmountError(f"failed to parse amount: {raw}", row_index=index, row=row)
    try:
        amount = Decimal(raw)
    except InvalidOperation:
        raise InvalidAmountError(f"failed to parse amount: {raw}", row_index=index, row=row) from None
    if not amount.is_finite() or math.isinf(float(amount)):
        raise InvalidAmountError(f"amount out of range: {raw}", row_index=index, row=row)
    return amount


def parse_transactions(csv_data):
    """
    Yield a TransactionRecord per data row of `csv_data`.

    The header row is skipped without validation. The first invalid row
    raises and stops the iteration; nothing is skipped.
    """
    reader = csv.reader(io.StringIO(csv_data))
    try:
        _read_row(reader)
    except StopIteration:
        raise MalformedRowError('missing header line', row_index=0, row=None) from None

    while True:
        try:
            row = _read_row(reader)
        except StopIteration:
            return
        if not row:
            continue
        index = reader.line_num - 1

        if len(row) < 4:
            raise MalformedRowError('record has missing columns', row_index=index, row=row)

        typ = row[1].lower()
        if typ not in (DEBIT, CREDIT):
            raise InvalidTransactionTypeError(f"invalid transaction type: {row[1]}", row_index=index, row=row)

        amount = _parse_amount(row[2], index, row)

        date = row[3]
        if len(date) < MONTH_KEY_LENGTH:
            raise InvalidDateError(f"date too short for a month key: {date}", row_index=index, row=row)

        yield TransactionRecord(type=typ, amount=amount, date=date)


def aggregate(records):
    """Fold records into a SummaryData. Order of `records` does not matter."""
    debit_total = Decimal('0')
    credit_total = Decimal('0')
    month_transactions = defaultdict(int)
    month_credits = defaultdict(Decimal)
    month_debits = defaultdict(Decimal)

    for rec in records:
        month = rec.month
        month_transactions[month] += 1
        if rec.type == CREDIT:
            credit_total += rec.amount
            month_credits[month] += rec.amount
        else:
            debit_total += rec.amount
            month_debits[month] += rec.amount

    return SummaryData(
        debit_total=debit_total,
        credit_total=credit_total,
        total_balance=credit_total + debit_total,
        transactions_by_month=dict(month_transactions),
        avg_credits_by_month=dict(month_credits),
        avg_debits_by_month=dict(month_debits),
    )


def summarize_csv(csv_data):
    return aggregate(parse_transactions(csv_data))

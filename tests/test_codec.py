"""Tests for the JSONL ledger codec."""

from datetime import date
from decimal import Decimal

import pytest

from ledgerfolio.codec import (
    decode_ledger,
    decode_transaction,
    encode_ledger,
    encode_transaction,
    load_ledger,
    save_ledger,
)
from ledgerfolio.errors import LedgerDecodeError
from ledgerfolio.ledger import Ledger
from ledgerfolio.transactions import ALL, Accrue, Buy, Convert, Sell, Split, UpdatePrice, Withdraw

CANONICAL = """\
{"command":"declare","date":"2025-01-01","ticker":"AAPL","id":"US0378331005.XNAS","currency":"USD"}
{"command":"deposit","date":"2025-01-02","memo":"initial funding","currency":"USD","amount":50000}
{"command":"accrue","date":"2025-01-02","counterparty":"Alice","create":true,"currency":"USD","amount":-250.50}
{"command":"buy","date":"2025-01-03","security":"AAPL","quantity":100,"amount":15000.00}
{"command":"update-price","date":"2025-01-03","prices":{"AAPL":151.25,"GOOG":2800}}
{"command":"sell","date":"2025-02-01","security":"AAPL","quantity":25,"currency":"USD","amount":4000}
{"command":"dividend","date":"2025-02-15","security":"AAPL","amount":75}
{"command":"split","date":"2025-03-01","security":"AAPL","num":4,"den":1}
{"command":"convert","date":"2025-03-10","fromCurrency":"USD","fromAmount":2000,"toCurrency":"EUR","toAmount":1800}
{"command":"withdraw","date":"2025-04-01","currency":"USD","amount":1000,"settles":"Alice"}
"""


def test_round_trip_is_byte_stable():
    assert encode_ledger(decode_ledger(CANONICAL)) == CANONICAL


def test_decode_values():
    ledger = decode_ledger(CANONICAL)
    txs = list(ledger)

    buy = txs[3]
    assert isinstance(buy, Buy)
    assert buy.quantity == Decimal("100")
    assert buy.amount == Decimal("15000.00")
    assert buy.currency is None

    accrue = txs[2]
    assert isinstance(accrue, Accrue)
    assert accrue.create is True
    assert accrue.amount == Decimal("-250.50")

    prices = txs[4]
    assert isinstance(prices, UpdatePrice)
    assert dict(prices.prices) == {"AAPL": Decimal("151.25"), "GOOG": Decimal("2800")}

    split = txs[7]
    assert isinstance(split, Split)
    assert (split.numerator, split.denominator) == (4, 1)


def test_all_is_persisted_by_omission():
    """A sell-all has no quantity key, and decoding it gives back ALL."""
    sell = Sell(date(2025, 1, 1), "AAPL", ALL, Decimal("10"))
    line = encode_transaction(sell)
    assert line == '{"command":"sell","date":"2025-01-01","security":"AAPL","amount":10}'
    assert decode_transaction(line).quantity is ALL

    withdraw = decode_transaction('{"command":"withdraw","date":"2025-01-01","currency":"USD"}')
    assert isinstance(withdraw, Withdraw)
    assert withdraw.amount is ALL

    convert = decode_transaction(
        '{"command":"convert","date":"2025-01-01","fromCurrency":"USD","toCurrency":"EUR","toAmount":5}'
    )
    assert isinstance(convert, Convert)
    assert convert.from_amount is ALL


def test_numbers_keep_their_exponent():
    tx = decode_transaction('{"command":"deposit","date":"2025-01-01","currency":"USD","amount":1.10}')
    assert encode_transaction(tx).endswith('"amount":1.10}')


def test_blank_lines_are_skipped():
    text = "\n" + CANONICAL.replace("\n", "\n\n", 1) + "\n"
    assert len(decode_ledger(text)) == 10


def test_lenient_dates_are_normalized():
    tx = decode_transaction('{"command":"deposit","date":"2025-1-2","currency":"USD","amount":1}')
    assert encode_transaction(tx).startswith('{"command":"deposit","date":"2025-01-02"')


def test_explicit_false_create_is_canonicalized():
    line = '{"command":"accrue","date":"2025-01-02","counterparty":"Bob","create":false,"currency":"EUR","amount":5}'
    tx = decode_transaction(line)
    assert tx.create is False
    assert encode_transaction(tx) == line.replace('"create":false,', "")


class TestDecodeErrors:

    def test_error_carries_file_and_line(self):
        text = CANONICAL.splitlines()[0] + "\n" + '{"command":"buy","date":"2025-01-03","security":"AAPL"}\n'
        with pytest.raises(LedgerDecodeError, match=r"parse error ledger.jsonl:2: missing property 'quantity'") as info:
            decode_ledger(text, filename="ledger.jsonl")
        assert info.value.line == 2
        assert info.value.filename == "ledger.jsonl"

    def test_invalid_json(self):
        with pytest.raises(LedgerDecodeError, match=r":1:"):
            decode_ledger("{not json")

    def test_unknown_command(self):
        with pytest.raises(LedgerDecodeError, match="unknown command 'gift'"):
            decode_ledger('{"command":"gift","date":"2025-01-01"}')

    def test_bad_date(self):
        with pytest.raises(LedgerDecodeError, match="Invalid date"):
            decode_ledger('{"command":"deposit","date":"soon","currency":"USD","amount":1}')

    @pytest.mark.parametrize("day", ["0d", "-1d", "+2w", "2025-01-05T10:00:00"])
    def test_dates_are_literal(self, day):
        """Relative and timestamped dates would change meaning from one day to the next."""
        with pytest.raises(LedgerDecodeError, match="Invalid date"):
            decode_ledger('{"command":"deposit","date":"' + day + '","currency":"USD","amount":1}')

    @pytest.mark.parametrize("line, message", [
        ('{"command":"buy","date":"2025-01-01","security":"X","quantity":1,"currency":5,"amount":1}',
         "property 'currency' must be a string"),
        ('{"command":"deposit","date":"2025-01-01","currency":"USD","amount":1,"settles":["Bob"]}',
         "property 'settles' must be a string"),
        ('{"command":"deposit","date":"2025-01-01","memo":7,"currency":"USD","amount":1}',
         "property 'memo' must be a string"),
        ('{"command":"accrue","date":"2025-01-01","counterparty":"Bob","create":"yes","currency":"EUR","amount":1}',
         "property 'create' must be true or false"),
    ])
    def test_optional_fields_are_type_checked(self, line, message):
        with pytest.raises(LedgerDecodeError, match=message):
            decode_ledger(line)


def test_load_and_save(tmp_path):
    path = tmp_path / "transactions.jsonl"
    path.write_text(CANONICAL, encoding="utf-8")

    ledger = load_ledger(str(path))
    save_ledger(ledger, str(path))

    assert path.read_text(encoding="utf-8") == CANONICAL


def test_load_missing_file(tmp_path):
    missing = str(tmp_path / "none.jsonl")
    with pytest.raises(FileNotFoundError, match="Ledger file not found"):
        load_ledger(missing)
    assert len(load_ledger(missing, create_if_missing=True)) == 0


def test_encode_empty_ledger():
    assert encode_ledger(Ledger()) == ""

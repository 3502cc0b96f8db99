"""
Tests for the record normaliser: planck conversion, role classification,
failure flagging and timestamp formatting.
"""
import pytest

from src.core.entities.chain import SUPPORTED_CHAINS
from src.core.entities.subscan import SubscanExtrinsic, SubscanTransfer
from src.core.use_cases.normalizer import (
    add_amounts,
    format_minor_units,
    format_timestamp,
    normalize_extrinsic,
    normalize_transfer,
)

from conftest import OTHER, POLKADOT, THIRD, WALLET, make_extrinsic, make_transfer


@pytest.mark.parametrize(
    "plancks, expected",
    [
        ("0", "0"),
        ("", "0"),
        (None, "0"),
        ("12345678900", "1.23456789"),
        ("10000000000", "1"),
        ("5", "0.0000000005"),
        ("0000", "0"),
        ("123456789012345678901234567890", "12345678901234567890.123456789"),
    ],
)
def test_format_minor_units(plancks, expected):
    assert format_minor_units(plancks, 10) == expected


def test_format_minor_units_is_idempotent():
    once = format_minor_units("12345678900", 10)
    assert format_minor_units(once, 10) == once
    assert format_minor_units("1.5", 10) == "1.5"


def test_format_minor_units_passes_malformed_input_through():
    assert format_minor_units("abc", 10) == "abc"
    assert format_minor_units("-5", 10) == "-5"


def test_format_minor_units_other_decimals():
    assert format_minor_units("1000000000000", 12) == "1"
    assert format_minor_units("42", 0) == "42"


def test_format_timestamp_is_zero_padded_utc():
    assert format_timestamp(1704067200) == "01/01/2024 00:00:00"
    assert format_timestamp(1709294645) == "03/01/2024 12:04:05"


def test_add_amounts_is_exact():
    assert add_amounts("0.1", "0.2") == "0.3"
    assert add_amounts("1", "0") == "1"
    assert add_amounts("1.5", "oops", None) == "1.5"


def test_received_transfer():
    event = normalize_transfer(SubscanTransfer.model_validate(make_transfer()), WALLET, POLKADOT)

    assert event.receivedQty == "1"
    assert event.receivedCurrency == "DOT"
    assert event.sentQty is None
    assert event.feeAmount == "0"  # receiver does not pay
    assert event.feeCurrency == "DOT"
    assert event.notes == "Polkadot transfer"
    assert event.date == "01/01/2024 00:00:00"
    assert event.txType == "transfer"
    assert event.protocol == "balances"
    assert event.blockHeight == "19000000"
    assert event.from_ == OTHER
    assert event.explorerUrl == "https://polkadot.subscan.io/extrinsic/0xaaa"


def test_sent_transfer_carries_fee():
    raw = SubscanTransfer.model_validate(make_transfer(**{"from": WALLET, "to": OTHER}))
    event = normalize_transfer(raw, WALLET, POLKADOT)

    assert event.sentQty == "1"
    assert event.sentCurrency == "DOT"
    assert event.receivedQty is None
    assert event.feeAmount == "0.015"


def test_address_match_is_case_insensitive():
    raw = SubscanTransfer.model_validate(make_transfer(**{"from": WALLET.lower()}))
    event = normalize_transfer(raw, WALLET, POLKADOT)
    assert event.sentQty == "1"


def test_self_transfer_has_both_legs_on_one_event():
    raw = SubscanTransfer.model_validate(make_transfer(**{"from": WALLET, "to": WALLET.upper()}))
    event = normalize_transfer(raw, WALLET, POLKADOT)

    assert event.receivedQty == "1"
    assert event.sentQty == "1"
    assert event.feeAmount == "0.015"


def test_unrelated_transfer_has_no_legs():
    raw = SubscanTransfer.model_validate(make_transfer(**{"from": OTHER, "to": THIRD}))
    event = normalize_transfer(raw, WALLET, POLKADOT)
    assert event.receivedQty is None
    assert event.sentQty is None
    assert event.feeAmount == "0"


def test_failed_transfer_is_flagged_not_dropped():
    raw = SubscanTransfer.model_validate(make_transfer(success=False))
    event = normalize_transfer(raw, WALLET, POLKADOT)
    assert event.notes.startswith("FAILED")
    assert event.receivedQty == "1"


def test_numeric_amounts_from_upstream_are_kept_exact():
    raw = SubscanTransfer.model_validate(make_transfer(amount=12345678900, fee=None))
    event = normalize_transfer(raw, WALLET, POLKADOT)
    assert event.receivedQty == "1.23456789"


def test_extrinsic_always_bears_fee():
    raw = SubscanExtrinsic.model_validate(make_extrinsic())
    event = normalize_extrinsic(raw, WALLET, POLKADOT)

    assert event.feeAmount == "0.016"
    assert event.txType == "fee"
    assert event.notes == "Extrinsic staking.bond"
    assert event.receivedQty is None and event.sentQty is None
    assert event.txHash == "0xeee"
    assert event.date == "01/02/2024 00:00:00"


def test_balances_transfer_extrinsic_is_tagged_transfer():
    raw = SubscanExtrinsic.model_validate(
        make_extrinsic(call_module="balances", call_module_function="transfer_keep_alive")
    )
    assert normalize_extrinsic(raw, WALLET, POLKADOT).txType == "transfer"


def test_failed_extrinsic_is_flagged():
    raw = SubscanExtrinsic.model_validate(make_extrinsic(success=False))
    event = normalize_extrinsic(raw, WALLET, POLKADOT)
    assert event.notes == "FAILED Extrinsic staking.bond"


def test_explorer_url_follows_chain_config():
    kusama = SUPPORTED_CHAINS["kusama"]
    raw = SubscanTransfer.model_validate(make_transfer(amount="1000000000000"))
    event = normalize_transfer(raw, WALLET, kusama)

    assert event.explorerUrl == "https://kusama.subscan.io/extrinsic/0xaaa"
    assert event.receivedQty == "1"
    assert event.receivedCurrency == "KSM"
    assert event.chain == "Kusama"

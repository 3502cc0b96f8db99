import sys
import os

# Add project root to path
sys.path.append(os.getcwd())

try:
    from src.core.entities.chain import SUPPORTED_CHAINS
    from src.core.entities.subscan import SubscanTransfer
    from src.core.use_cases.normalizer import normalize_transfer
    from src.core.use_cases.csv_export import generate_csv
    from src.infrastructure.gateways.subscan_api import SubscanGateway
    from src.api.main import app
    print("✅ All imports successful.")
except Exception as e:
    print(f"❌ Import failed: {e}")
    sys.exit(1)

WALLET = "15oF4uVJwmo4TdGW7VfQxNLavjCXviqxT9S1MgbjMNHr6Sp5"


# Test Normalizer Logic Simple
def test_normalize():
    try:
        raw = SubscanTransfer.model_validate({
            "from": "14E5nqKAp3oAJcmzgZhUD2RcptBeUBScxKHgJKU4HPNcKVf3",
            "to": WALLET,
            "amount": "12345678900",
            "fee": "150000000",
            "success": True,
            "hash": "0xdiag",
            "block_num": 1,
            "block_timestamp": 1700000000,
            "module": "balances",
        })
        event = normalize_transfer(raw, WALLET, SUPPORTED_CHAINS["polkadot"])

        if event.receivedQty == "1.23456789" and event.feeAmount == "0":
            print("✅ Normalizer basic test passed.")
        else:
            print(f"❌ Normalizer failed, got received={event.receivedQty} fee={event.feeAmount}")
        print(generate_csv([event]))
    except Exception as e:
        print(f"❌ Normalizer raised exception: {e}")


if __name__ == "__main__":
    test_normalize()

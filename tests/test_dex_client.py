"""
Tests for the blocking DEX client and transaction sender.
"""
import pytest
from unittest.mock import MagicMock, patch

from web3.exceptions import ContractCustomError, ContractLogicError

from stableflip.config.config import DEFAULT_DEX_ADDRESS
from stableflip.core.errors import TransactionFailed
from stableflip.infra.dex_client import (
    ORDER_DOES_NOT_EXIST_SELECTOR,
    ZERO_ADDRESS,
    DexClient,
    is_order_missing_error,
    order_from_call,
)
from stableflip.infra.tx_sender import TransactionSender, TxReceipt, receipt_status

from conftest import MAKER

BOOK = "0x20c0000000000000000000000000000000000001"


def _raw_order(maker=MAKER, is_bid=True, remaining=50, is_flip=True):
    # (orderId, maker, bookKey, isBid, tick, amount, remaining, prev, next, isFlip, flipTick)
    return (9, maker, BOOK, is_bid, -50, 100, remaining, 0, 0, is_flip, 50)


@pytest.fixture
def sender():
    s = MagicMock()
    s.address = MAKER
    return s


@pytest.fixture
def client(sender):
    return DexClient(MagicMock(), DEFAULT_DEX_ADDRESS, sender)


class TestMissingOrderDetection:

    def test_named_revert(self):
        assert is_order_missing_error(ContractLogicError("execution reverted: OrderDoesNotExist()"))

    def test_selector_in_data(self):
        exc = ContractCustomError("execution reverted", data=ORDER_DOES_NOT_EXIST_SELECTOR)
        assert is_order_missing_error(exc)

    def test_other_revert(self):
        assert not is_order_missing_error(ContractLogicError("execution reverted: Unauthorized()"))

    def test_transport_error(self):
        assert not is_order_missing_error(ConnectionError("OrderDoesNotExist"))


class TestOrderDecoding:

    def test_flip_order(self):
        order = order_from_call(9, _raw_order())
        assert order.is_bid and order.is_flip
        assert (order.tick, order.flip_tick) == (-50, 50)
        assert order.is_live

    def test_plain_order_has_no_flip_tick(self):
        assert order_from_call(9, _raw_order(is_flip=False)).flip_tick is None

    def test_empty_slot(self):
        assert order_from_call(9, _raw_order(maker=ZERO_ADDRESS)) is None

    def test_fully_filled_is_not_live(self):
        assert not order_from_call(9, _raw_order(remaining=0)).is_live


class TestGetOrder:

    def test_found(self, client):
        client.contract.functions.getOrder.return_value.call.return_value = _raw_order()
        order = client.get_order(9)
        assert order.order_id == 9
        client.contract.functions.getOrder.assert_called_with(9)

    def test_not_found_maps_to_none(self, client):
        client.contract.functions.getOrder.return_value.call.side_effect = ContractLogicError(
            "execution reverted: OrderDoesNotExist()"
        )
        assert client.get_order(9) is None

    def test_other_revert_raises(self, client):
        client.contract.functions.getOrder.return_value.call.side_effect = ContractLogicError(
            "execution reverted: Paused()"
        )
        with pytest.raises(ContractLogicError):
            client.get_order(9)

    def test_transport_error_raises(self, client):
        client.contract.functions.getOrder.return_value.call.side_effect = ConnectionError("reset")
        with pytest.raises(ConnectionError):
            client.get_order(9)

    def test_pair_exists(self, client):
        assert client.pair_exists(BOOK)
        client.contract.functions.getTickLevel.return_value.call.side_effect = ContractLogicError("no book")
        assert not client.pair_exists(BOOK)


class TestPlacement:

    def test_order_id_from_event(self, client, sender):
        sender.send.return_value = TxReceipt(tx_hash="0xaa", status=1, block_number=3, gas_used=90_000, raw={})
        client.contract.events.FlipOrderPlaced.return_value.process_receipt.return_value = [
            {"args": {"maker": "0x9999999999999999999999999999999999999999", "orderId": 1}},
            {"args": {"maker": MAKER, "orderId": 77}},
        ]

        result = client.place_flip_order(BOOK, 100, True, -50, 50)

        assert result.order_id == 77
        assert result.tx_hash == "0xaa"
        client.contract.functions.placeFlip.assert_called_once()

    def test_no_event(self, client, sender):
        sender.send.return_value = TxReceipt(tx_hash="0xbb", status=1, block_number=3, gas_used=1, raw={})
        client.contract.events.FlipOrderPlaced.return_value.process_receipt.return_value = []
        assert client.place_flip_order(BOOK, 100, False, 50, -50).order_id is None


class TestTransactionSender:

    @pytest.fixture
    def w3(self):
        w3 = MagicMock()
        w3.eth.get_transaction_count.return_value = 3
        w3.eth.gas_price = 7
        w3.eth.send_raw_transaction.return_value = b"\xab" * 32
        return w3

    def _sender(self, w3):
        account = MagicMock()
        account.address = MAKER
        return TransactionSender(w3, account, chain_id=42429)

    def test_success(self, w3):
        w3.eth.wait_for_transaction_receipt.return_value = {"status": 1, "blockNumber": 10, "gasUsed": 60_000}
        fn = MagicMock()
        fn.build_transaction.return_value = {"gas": 100_000}

        with patch("stableflip.infra.tx_sender.Account") as account_cls:
            account_cls.sign_transaction.return_value = MagicMock(raw_transaction=b"\x01")
            receipt = self._sender(w3).send(fn)

        assert receipt.success
        assert receipt.tx_hash == "0x" + "ab" * 32
        assert receipt.block_number == 10
        built = fn.build_transaction.call_args[0][0]
        assert built["nonce"] == 3
        assert built["chainId"] == 42429
        signed_tx = account_cls.sign_transaction.call_args[0][0]
        assert signed_tx["gas"] == 120_000

    def test_revert_raises(self, w3):
        w3.eth.wait_for_transaction_receipt.return_value = {"status": 0, "blockNumber": 10, "gasUsed": 60_000}
        fn = MagicMock()
        fn.build_transaction.return_value = {"gas": 100_000}

        with patch("stableflip.infra.tx_sender.Account") as account_cls:
            account_cls.sign_transaction.return_value = MagicMock(raw_transaction=b"\x01")
            with pytest.raises(TransactionFailed):
                self._sender(w3).send(fn)

    @pytest.mark.parametrize("receipt,expected", [
        ({"status": 1}, 1),
        ({"status": "0x1"}, 1),
        ({"status": 0}, 0),
        ({}, 0),
        (None, 0),
    ])
    def test_receipt_status(self, receipt, expected):
        assert receipt_status(receipt) == expected

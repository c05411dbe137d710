# Contract interaction tests
# tests/test_contract.py
"""
On-chain Interaction Tests
Tests ERC20 balance reads, token approvals and the swap executors
against a mocked web3 connection
"""

import time
from unittest.mock import AsyncMock, Mock

import pytest
from eth_account import Account

from config.addresses import ZERO_HASH
from stable_arb.abis import UNISWAP_V3_ROUTER_ABI
from stable_arb.balance_inspector import BalanceInspector
from stable_arb.executors import CowSwapExecutor, OneInchExecutor, UniswapV3Executor, UniswapV4Executor
from stable_arb.executors.base import DEFAULT_GAS_FALLBACK, TRANSFER_TOPIC, transfer_amount_from_receipt
from stable_arb.executors.cowswap import _order_uid, sign_order
from stable_arb.executors.oneinch import slippage_percentage
from stable_arb.models import SwapRequest, Token
from stable_arb.utils.logger import get_logger

logger = get_logger(__name__)

USDC = Token("0x3c499c542cEF5E3811e1192ce70d8cC03d5c3359", 6, "USDC", 137)
USDT = Token("0xc2132D05D31c914a87C6611C10748AEb04B58e8F", 6, "USDT", 137)
DAI = Token("0x8f3Cf7ad23Cd3CaDbD9735AFf958023239c6A063", 18, "DAI", 137)

WALLET = "0x3333333333333333333333333333333333333333"
ROUTER = "0xE592427A0AEce92De3Edee1F18E0157C05861564"
ONEINCH_ROUTER = "0x1111111254EEB25477B68fb85Ed929f73A960582"
TX_HASH = bytes.fromhex("ab" * 32)


def make_signer():
    signer = Mock()
    signer.address = WALLET
    signer.sign_transaction.return_value = Mock(raw_transaction=b"\x02\xf8")
    return signer


def make_request(signer=None, **overrides):
    fields = dict(
        token_in=USDT,
        token_out=USDC,
        amount_in=1000 * 10**6,
        min_amount_out=999 * 10**6,
        deadline=int(time.time()) + 300,
        signer=signer or make_signer(),
        chain_id=137,
        expected_amount_out=1004 * 10**6,
    )
    fields.update(overrides)
    return SwapRequest(**fields)


def transfer_log(token, recipient, amount):
    return {
        'address': token.address,
        'topics': [
            TRANSFER_TOPIC,
            '0x' + '00' * 12 + ROUTER[2:].lower(),
            '0x' + '00' * 12 + recipient[2:].lower(),
        ],
        'data': hex(amount),
    }


def make_web3(allowance=0, status=1, logs=None):
    """web3 mock with one token contract and one router contract"""
    w3 = Mock()
    token_contract = Mock()
    router_contract = Mock()

    token_contract.functions.allowance.return_value.call.return_value = allowance
    token_contract.functions.approve.return_value.build_transaction.side_effect = lambda params: {
        **params, 'to': USDT.address, 'data': '0x095ea7b3', 'value': 0, 'gas': 60000
    }
    router_contract.functions.exactInputSingle.return_value.build_transaction.side_effect = lambda params: {
        **params, 'to': ROUTER, 'data': '0x414bf389', 'value': 0, 'gas': 200000
    }

    w3.eth.contract.side_effect = lambda address, abi: (
        router_contract if abi is UNISWAP_V3_ROUTER_ABI else token_contract
    )
    w3.eth.get_transaction_count.return_value = 7
    w3.eth.gas_price = 30 * 10**9
    w3.eth.send_raw_transaction.return_value = TX_HASH
    w3.eth.wait_for_transaction_receipt.return_value = {
        'status': status,
        'gasUsed': 150000,
        'transactionHash': TX_HASH,
        'blockNumber': 123,
        'logs': logs or [],
    }

    w3.token_contract = token_contract
    w3.router_contract = router_contract
    return w3


class TestBalanceInspector:
    """Test suite for ERC20 balance discovery"""

    @pytest.fixture
    def balances(self):
        return {
            USDC.address.lower(): 1500 * 10**6,
            USDT.address.lower(): 1000 * 10**6,
            DAI.address.lower(): 5 * 10**18,
        }

    @pytest.fixture
    def w3(self, balances):
        w3 = Mock()

        def contract(address, abi):
            token_contract = Mock()
            call = token_contract.functions.balanceOf.return_value.call
            if address.lower() in balances:
                call.return_value = balances[address.lower()]
            else:
                call.side_effect = ConnectionError("RPC timeout")
            return token_contract

        w3.eth.contract.side_effect = contract
        return w3

    @pytest.mark.asyncio
    async def test_get_balance(self, w3):
        inspector = BalanceInspector(w3)

        assert await inspector.get_balance(WALLET, USDT) == 1000 * 10**6

    @pytest.mark.asyncio
    async def test_get_balance_propagates_rpc_errors(self, w3, balances):
        del balances[USDT.address.lower()]
        inspector = BalanceInspector(w3)

        with pytest.raises(ConnectionError):
            await inspector.get_balance(WALLET, USDT)

    @pytest.mark.asyncio
    async def test_failed_read_counts_as_zero(self, w3, balances):
        del balances[USDC.address.lower()]
        inspector = BalanceInspector(w3)

        result = await inspector.get_balances(WALLET, [USDC, USDT])

        assert result == {"USDC": 0, "USDT": 1000 * 10**6}

        logger.info("✅ Failed balance read isolated")

    @pytest.mark.asyncio
    async def test_highest_balance_compares_raw_units(self, w3):
        """5 DAI outranks 1500 USDC because raw 18-decimal units are larger"""
        inspector = BalanceInspector(w3)

        token, balance = await inspector.get_highest_stablecoin_balance(WALLET, [USDC, USDT, DAI])

        assert token == DAI
        assert balance == 5 * 10**18

    @pytest.mark.asyncio
    async def test_threshold_is_inclusive(self, w3):
        inspector = BalanceInspector(w3)

        token, balance = await inspector.get_highest_stablecoin_balance(
            WALLET, [USDC, USDT], min_threshold=1500 * 10**6
        )

        assert token == USDC
        assert balance == 1500 * 10**6

    @pytest.mark.asyncio
    async def test_nothing_above_threshold(self, w3):
        inspector = BalanceInspector(w3)

        assert await inspector.get_highest_stablecoin_balance(
            WALLET, [USDC, USDT], min_threshold=2000 * 10**6
        ) is None

    @pytest.mark.asyncio
    async def test_all_zero_balances(self, w3, balances):
        for key in balances:
            balances[key] = 0
        inspector = BalanceInspector(w3)

        assert await inspector.get_highest_stablecoin_balance(WALLET, [USDC, USDT, DAI]) is None


class TestTokenApproval:
    """Test suite for allowance checks"""

    @pytest.mark.asyncio
    async def test_sufficient_allowance_skips_approval(self):
        w3 = make_web3(allowance=10**30)
        executor = UniswapV3Executor(w3, ROUTER)

        await executor.approve_token(USDT, 1000 * 10**6, make_signer())

        w3.token_contract.functions.approve.assert_not_called()
        w3.eth.send_raw_transaction.assert_not_called()

        logger.info("✅ Existing allowance reused")

    @pytest.mark.asyncio
    async def test_insufficient_allowance_sends_approval(self):
        w3 = make_web3(allowance=0)
        executor = UniswapV3Executor(w3, ROUTER)
        signer = make_signer()

        await executor.approve_token(USDT, 1000 * 10**6, signer)

        w3.token_contract.functions.approve.assert_called_once_with(ROUTER, 1000 * 10**6)
        signed_tx = signer.sign_transaction.call_args[0][0]
        assert 'from' not in signed_tx
        assert signed_tx['nonce'] == 7
        assert signed_tx['chainId'] == 137
        assert signed_tx['gas'] == 60000
        w3.eth.send_raw_transaction.assert_called_once_with(b"\x02\xf8")

    @pytest.mark.asyncio
    async def test_reverted_approval_raises(self):
        w3 = make_web3(allowance=0, status=0)
        executor = UniswapV3Executor(w3, ROUTER)

        with pytest.raises(RuntimeError, match="Transaction reverted"):
            await executor.approve_token(USDT, 1000 * 10**6, make_signer())


class TestUniswapV3Executor:
    """Test suite for router swaps"""

    @pytest.mark.asyncio
    async def test_successful_swap_reads_output_from_transfer_log(self):
        w3 = make_web3(allowance=10**30, logs=[transfer_log(USDC, WALLET, 1_003_500_000)])
        executor = UniswapV3Executor(w3, ROUTER, default_fee_tier=500)
        request = make_request()

        result = await executor.execute(request)

        assert result.success is True
        assert result.provider == "Uniswap V3"
        assert result.amount_out == 1_003_500_000
        assert result.gas_used == 150000
        assert result.transaction_hash == "0x" + "ab" * 32

        params = w3.router_contract.functions.exactInputSingle.call_args[0][0]
        assert params == (USDT.address, USDC.address, 500, WALLET, request.deadline,
                          1000 * 10**6, 999 * 10**6, 0)

        logger.info("✅ Uniswap V3 swap executed")

    @pytest.mark.asyncio
    async def test_output_falls_back_to_minimum(self):
        w3 = make_web3(allowance=10**30)
        executor = UniswapV3Executor(w3, ROUTER)

        result = await executor.execute(make_request())

        assert result.amount_out == 999 * 10**6

    @pytest.mark.asyncio
    async def test_revert_is_reported_not_raised(self):
        w3 = make_web3(allowance=10**30, status=0)
        executor = UniswapV3Executor(w3, ROUTER)

        result = await executor.execute(make_request())

        assert result.success is False
        assert result.error.startswith("Transaction reverted")

    @pytest.mark.asyncio
    async def test_gas_estimate_falls_back(self):
        w3 = make_web3()
        w3.router_contract.functions.exactInputSingle.return_value.estimate_gas.side_effect = \
            ValueError("execution reverted")
        executor = UniswapV3Executor(w3, ROUTER)

        assert await executor.estimate_gas(make_request()) == 300000

    def test_transfer_amount_ignores_other_recipients(self):
        receipt = {'logs': [
            transfer_log(USDC, WALLET, 10),
            transfer_log(USDC, ROUTER, 99),
            transfer_log(USDT, WALLET, 77),
        ]}

        assert transfer_amount_from_receipt(receipt, USDC.address, WALLET) == 10
        assert transfer_amount_from_receipt({'logs': []}, USDC.address, WALLET) is None


class TestOneInchExecutor:
    """Test suite for API-built swaps"""

    @pytest.fixture
    def swap_response(self):
        return {
            'toAmount': str(1_003_000_000),
            'tx': {
                'from': WALLET,
                'to': ONEINCH_ROUTER,
                'data': '0x12aa3caf',
                'value': '0',
                'gas': 250000,
                'gasPrice': str(40 * 10**9),
            },
        }

    @pytest.fixture
    def client(self, swap_response):
        client = Mock()
        responses = {
            '/approve/spender': {'address': ONEINCH_ROUTER},
            '/swap': swap_response,
        }
        client.get = AsyncMock(side_effect=lambda path, params=None: responses[path])
        return client

    def test_slippage_percentage(self):
        assert str(slippage_percentage(1000, 995)) == '0.50'
        assert str(slippage_percentage(None, 995)) == '1'
        assert str(slippage_percentage(995, 995)) == '1'

    def test_validation_rejects_foreign_sender(self, swap_response):
        swap_response['tx']['from'] = ONEINCH_ROUTER

        with pytest.raises(ValueError, match="'from' address mismatch"):
            OneInchExecutor.validate_swap_data(swap_response, make_request())

    def test_validation_rejects_short_output(self, swap_response):
        swap_response['toAmount'] = str(998 * 10**6)

        with pytest.raises(ValueError, match="less than minimum"):
            OneInchExecutor.validate_swap_data(swap_response, make_request())

    def test_validation_rejects_empty_calldata(self, swap_response):
        swap_response['tx']['data'] = '0x'

        with pytest.raises(ValueError, match="Invalid transaction data"):
            OneInchExecutor.validate_swap_data(swap_response, make_request())

    @pytest.mark.asyncio
    async def test_successful_swap(self, client):
        w3 = make_web3(allowance=10**30)
        executor = OneInchExecutor(w3, "https://api.1inch.dev/swap/v5.2/137", client=client)
        signer = make_signer()

        result = await executor.execute(make_request(signer))

        assert result.success is True
        assert result.amount_out == 1_003_000_000
        assert result.transaction_hash == "0x" + "ab" * 32

        swap_params = client.get.await_args_list[-1].kwargs['params']
        assert swap_params['slippage'] == '0.50'
        assert swap_params['from'] == WALLET

        signed_tx = signer.sign_transaction.call_args[0][0]
        assert signed_tx['to'] == ONEINCH_ROUTER
        assert signed_tx['gas'] == 250000
        assert signed_tx['gasPrice'] == 40 * 10**9
        assert signed_tx['data'] == '0x12aa3caf'

        logger.info("✅ 1Inch swap executed")

    @pytest.mark.asyncio
    async def test_invalid_swap_data_fails_without_broadcast(self, client, swap_response):
        swap_response['toAmount'] = '1'
        w3 = make_web3(allowance=10**30)
        executor = OneInchExecutor(w3, "https://api.1inch.dev/swap/v5.2/137", client=client)

        result = await executor.execute(make_request())

        assert result.success is False
        assert "less than minimum" in result.error
        w3.eth.send_raw_transaction.assert_not_called()

    @pytest.mark.asyncio
    async def test_gas_estimate_from_api(self, client):
        executor = OneInchExecutor(make_web3(), "https://api.1inch.dev/swap/v5.2/137", client=client)

        assert await executor.estimate_gas(make_request()) == 250000

    @pytest.mark.asyncio
    async def test_gas_estimate_falls_back(self):
        client = Mock()
        client.get = AsyncMock(side_effect=ValueError("bad payload"))
        executor = OneInchExecutor(make_web3(), "https://api.1inch.dev/swap/v5.2/137", client=client)

        assert await executor.estimate_gas(make_request()) == 300000


class TestCowSwapExecutor:
    """Test suite for batch-auction orders"""

    @pytest.fixture
    def client(self):
        client = Mock()
        client.post = AsyncMock()
        client.get = AsyncMock()
        return client

    def make_executor(self, client, **kwargs):
        kwargs.setdefault('poll_interval', 0)
        return CowSwapExecutor(make_web3(allowance=10**30), "https://api.cow.fi/polygon",
                               client=client, **kwargs)

    def test_order_signature_is_eip712(self):
        account = Account.create()
        request = make_request(signer=account)
        executor = CowSwapExecutor(Mock(), "https://api.cow.fi/polygon", client=Mock())

        order = executor.build_order(request, '1000')
        signature = sign_order(order, account, 137)

        assert order['appData'] == ZERO_HASH
        assert order['buyAmount'] == str(999 * 10**6)
        assert order['receiver'] == account.address
        assert signature.startswith('0x')
        assert len(signature) == 132

    def test_order_uid_shapes(self):
        assert _order_uid("0xuid") == "0xuid"
        assert _order_uid({'orderId': "0xabc"}) == "0xabc"
        assert _order_uid({'uid': "0xdef"}) == "0xdef"
        with pytest.raises(ValueError):
            _order_uid({'status': 'ok'})

    @pytest.mark.asyncio
    async def test_fee_quote_failure_uses_zero_fee(self, client):
        client.post.side_effect = ConnectionError("api down")
        executor = self.make_executor(client)

        assert await executor.get_fee_amount(make_request()) == '0'

    @pytest.mark.asyncio
    async def test_fulfilled_order(self, client):
        account = Account.create()
        client.post.side_effect = [
            {'quote': {'feeAmount': '2500'}},
            "0xorderuid",
        ]
        client.get.side_effect = [
            {'status': 'open'},
            {'status': 'fulfilled', 'executedBuyAmount': str(1_002_000_000)},
        ]
        executor = self.make_executor(client)

        result = await executor.execute(make_request(signer=account))

        assert result.success is True
        assert result.transaction_hash == "0xorderuid"
        assert result.amount_out == 1_002_000_000
        assert result.gas_used == 0

        order_body = client.post.await_args_list[1][0][1]
        assert order_body['signingScheme'] == 'eip712'
        assert order_body['feeAmount'] == '2500'
        assert order_body['from'] == account.address

        logger.info("✅ CowSwap order fulfilled")

    @pytest.mark.asyncio
    async def test_expired_order(self, client):
        client.post.side_effect = [{'quote': {'feeAmount': '0'}}, {'orderId': "0xexpired"}]
        client.get.return_value = {'status': 'expired'}
        executor = self.make_executor(client)

        result = await executor.execute(make_request(signer=Account.create()))

        assert result.success is False
        assert result.error == "Order expired: 0xexpired"

    @pytest.mark.asyncio
    async def test_order_timeout(self, client):
        client.get.return_value = {'status': 'open'}
        executor = self.make_executor(client, order_timeout=0.05, poll_interval=0.01)

        result = await executor.monitor_order("0xslow", make_request())

        assert result.success is False
        assert result.error.startswith("CowSwap order timeout after 0.05 seconds")

    @pytest.mark.asyncio
    async def test_gas_estimate_is_nominal(self, client):
        assert await self.make_executor(client).estimate_gas(make_request()) == 50000


class TestUniswapV4Executor:
    """Test suite for the placeholder V4 executor"""

    @pytest.mark.asyncio
    async def test_execute_reports_not_deployed(self):
        executor = UniswapV4Executor(Mock())

        result = await executor.execute(make_request())

        assert result.success is False
        assert result.error == "Uniswap V4 is not yet deployed on this network"

    @pytest.mark.asyncio
    async def test_approval_is_rejected(self):
        executor = UniswapV4Executor(Mock())

        with pytest.raises(RuntimeError, match="not yet deployed"):
            await executor.approve_token(USDT, 1, make_signer())

    @pytest.mark.asyncio
    async def test_gas_estimate_uses_fallback(self):
        executor = UniswapV4Executor(Mock())

        assert await executor.estimate_gas(make_request()) == DEFAULT_GAS_FALLBACK
        assert executor.can_execute is False

"""
Chain Client
Handles all JSON-RPC interaction with the target chain: endpoint selection,
ERC20 reads/approvals, gas estimation and transaction submission.
"""

import asyncio
from decimal import Decimal
from typing import Any, Dict, Optional

from eth_account import Account
from web3 import Web3

from config.constants import (
    DEFAULT_APPROVE_GAS_LIMIT,
    GAS_ESTIMATE_BUFFER,
    LOW_NATIVE_BALANCE_ETH,
    MAX_RETRIES,
    MAX_UINT256,
    RETRY_BASE_DELAY,
    RPC_TIMEOUT_SEC,
    TX_RECEIPT_TIMEOUT_SEC,
)
from config.settings import HedgeSettings
from utils.exceptions import (
    ApprovalError,
    AuthenticationError,
    NetworkError,
    RPCConnectionError,
    TransactionError,
    TransactionRevertedError,
)
from utils.helpers import async_retry_with_backoff, to_checksum
from utils.logger import get_logger, log_tx_event


logger = get_logger(__name__)


ERC20_ABI = [
    {
        "constant": True,
        "inputs": [{"name": "owner", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "", "type": "uint256"}],
        "type": "function"
    },
    {
        "constant": True,
        "inputs": [],
        "name": "decimals",
        "outputs": [{"name": "", "type": "uint8"}],
        "type": "function"
    },
    {
        "constant": True,
        "inputs": [
            {"name": "owner", "type": "address"},
            {"name": "spender", "type": "address"}
        ],
        "name": "allowance",
        "outputs": [{"name": "", "type": "uint256"}],
        "type": "function"
    },
    {
        "constant": False,
        "inputs": [
            {"name": "spender", "type": "address"},
            {"name": "amount", "type": "uint256"}
        ],
        "name": "approve",
        "outputs": [{"name": "", "type": "bool"}],
        "type": "function"
    },
]


class ChainClient:
    """
    Thin async wrapper around a synchronous Web3 instance.
    Blocking RPC calls run in a worker thread via asyncio.to_thread.
    """

    def __init__(self, settings: HedgeSettings):
        self.settings = settings
        self._w3: Optional[Web3] = None
        self._account = None
        self._private_key: Optional[str] = None
        self._rpc_url: Optional[str] = None
        self._chain_id: Optional[int] = None
        self._is_initialized = False
        self._decimals_cache: Dict[str, int] = {}

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------

    async def connect(self, private_key: str) -> None:
        """
        Connect to the first endpoint that answers eth_blockNumber and load
        the signing account.

        Raises:
            AuthenticationError: If the key is unusable
            RPCConnectionError: If no endpoint answers
            NetworkError: If the node is on the wrong chain
        """
        if self._is_initialized:
            return

        try:
            self._account = Account.from_key(private_key)
        except (ValueError, TypeError) as e:
            raise AuthenticationError(f"Failed to create account from private key: {e}")
        self._private_key = private_key

        endpoints = self.settings.rpc_endpoints()
        failures: Dict[str, str] = {}
        for url in endpoints:
            logger.info(f"Trying RPC: {url}")
            w3 = Web3(Web3.HTTPProvider(url, request_kwargs={'timeout': RPC_TIMEOUT_SEC}))
            try:
                block = await asyncio.to_thread(lambda: w3.eth.block_number)
            except Exception as e:
                failures[url] = str(e)
                logger.warning(f"Failed to connect to {url}: {e}")
                continue
            self._w3 = w3
            self._rpc_url = url
            logger.info(f"Connected to RPC: {url} (block {block})")
            break

        if self._w3 is None:
            raise RPCConnectionError(
                "Could not connect to any RPC provider",
                endpoints=endpoints,
                failures=failures
            )

        chain_id = await self.get_chain_id()
        expected = self.settings.expected_chain_id
        if expected and chain_id != expected:
            raise NetworkError(
                f"Connected to chain {chain_id}, expected {expected}",
                error_code='WRONG_CHAIN',
                details={'rpc_url': self._rpc_url}
            )

        self._is_initialized = True
        logger.info(f"Using account: {self._account.address} on chain {chain_id}")

    async def close(self) -> None:
        provider = getattr(self._w3, 'provider', None) if self._w3 else None
        session_closer = getattr(provider, 'disconnect', None)
        if callable(session_closer):
            try:
                await asyncio.to_thread(session_closer)
            except Exception as e:
                logger.debug(f"Provider disconnect failed: {e}")
        self._is_initialized = False
        self._w3 = None

    def _ensure_initialized(self) -> None:
        if not self._is_initialized:
            raise AuthenticationError("Chain client not initialized. Call connect() first.")

    @property
    def address(self) -> str:
        self._ensure_initialized()
        return self._account.address

    @property
    def account(self):
        self._ensure_initialized()
        return self._account

    @property
    def rpc_url(self) -> Optional[str]:
        return self._rpc_url

    @property
    def private_key(self) -> str:
        self._ensure_initialized()
        return self._private_key

    # ------------------------------------------------------------------
    # chain reads
    # ------------------------------------------------------------------

    @async_retry_with_backoff(max_retries=MAX_RETRIES, base_delay=RETRY_BASE_DELAY)
    async def get_chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = int(await asyncio.to_thread(lambda: self._w3.eth.chain_id))
        return self._chain_id

    @async_retry_with_backoff(max_retries=MAX_RETRIES, base_delay=RETRY_BASE_DELAY)
    async def get_block_number(self) -> int:
        self._ensure_initialized()
        return int(await asyncio.to_thread(lambda: self._w3.eth.block_number))

    @async_retry_with_backoff(max_retries=MAX_RETRIES, base_delay=RETRY_BASE_DELAY)
    async def get_native_balance(self, address: Optional[str] = None) -> Decimal:
        """Native (ETH) balance in ether"""
        self._ensure_initialized()
        owner = to_checksum(address or self.address)
        wei = await asyncio.to_thread(self._w3.eth.get_balance, owner)
        return Decimal(int(wei)) / Decimal(10**18)

    async def check_gas_balance(self) -> Decimal:
        balance = await self.get_native_balance()
        logger.info(f"Native balance: {balance:.6f} ETH")
        if balance < Decimal(str(LOW_NATIVE_BALANCE_ETH)):
            logger.warning("Low native balance. You may not have enough gas for transactions.")
        return balance

    @async_retry_with_backoff(max_retries=MAX_RETRIES, base_delay=RETRY_BASE_DELAY)
    async def call(self, to: str, data: str) -> bytes:
        """eth_call against the latest block"""
        self._ensure_initialized()
        result = await asyncio.to_thread(
            self._w3.eth.call,
            {'to': to_checksum(to), 'data': data}
        )
        return bytes(result)

    # ------------------------------------------------------------------
    # ERC20
    # ------------------------------------------------------------------

    def _erc20(self, token: str):
        return self._w3.eth.contract(address=to_checksum(token), abi=ERC20_ABI)

    @async_retry_with_backoff(max_retries=MAX_RETRIES, base_delay=RETRY_BASE_DELAY)
    async def get_token_balance(self, token: str, owner: Optional[str] = None) -> int:
        self._ensure_initialized()
        holder = to_checksum(owner or self.address)
        return int(await asyncio.to_thread(self._erc20(token).functions.balanceOf(holder).call))

    @async_retry_with_backoff(max_retries=MAX_RETRIES, base_delay=RETRY_BASE_DELAY)
    async def get_token_decimals(self, token: str) -> int:
        self._ensure_initialized()
        key = to_checksum(token)
        if key not in self._decimals_cache:
            self._decimals_cache[key] = int(
                await asyncio.to_thread(self._erc20(key).functions.decimals().call)
            )
        return self._decimals_cache[key]

    @async_retry_with_backoff(max_retries=MAX_RETRIES, base_delay=RETRY_BASE_DELAY)
    async def get_allowance(self, token: str, spender: str, owner: Optional[str] = None) -> int:
        self._ensure_initialized()
        holder = to_checksum(owner or self.address)
        return int(await asyncio.to_thread(
            self._erc20(token).functions.allowance(holder, to_checksum(spender)).call
        ))

    async def approve(self, token: str, spender: str, amount: int) -> str:
        """
        Send approve(spender, amount) and wait for it to be mined.

        Returns:
            Transaction hash

        Raises:
            ApprovalError: If the approval cannot be sent or reverts
        """
        self._ensure_initialized()
        try:
            tx = await asyncio.to_thread(
                self._erc20(token).functions.approve(to_checksum(spender), amount).build_transaction,
                await self._base_tx_params(self.address, DEFAULT_APPROVE_GAS_LIMIT)
            )
            receipt = await self._sign_send_and_wait(tx, self._private_key)
        except TransactionError as e:
            raise ApprovalError(f"Approval of {token} failed: {e.message}", tx_hash=e.tx_hash, original_error=e)
        except Exception as e:
            raise ApprovalError(f"Approval of {token} failed: {e}", original_error=e)
        return receipt['transactionHash']

    async def ensure_allowance(
        self,
        token: str,
        spender: str,
        amount: int,
        unlimited: bool = False
    ) -> Optional[str]:
        """
        Approve spender for at least `amount` unless already allowed.

        Returns:
            Approval tx hash, or None if the current allowance sufficed
        """
        current = await self.get_allowance(token, spender)
        if current >= amount:
            logger.info(f"Allowance already sufficient ({current} >= {amount})")
            return None

        approve_amount = MAX_UINT256 if unlimited else amount
        logger.info(
            f"Approving {'unlimited' if unlimited else approve_amount} of {token} for {spender}..."
        )
        tx_hash = await self.approve(token, spender, approve_amount)
        log_tx_event(logger, 'APPROVAL_CONFIRMED', tx_hash=tx_hash, token=token, spender=spender)
        return tx_hash

    # ------------------------------------------------------------------
    # transactions
    # ------------------------------------------------------------------

    async def _base_tx_params(self, sender: str, gas: int) -> Dict[str, Any]:
        nonce = await asyncio.to_thread(self._w3.eth.get_transaction_count, sender, 'pending')
        gas_price = await asyncio.to_thread(lambda: self._w3.eth.gas_price)
        return {
            'from': sender,
            'nonce': nonce,
            'gas': gas,
            'gasPrice': gas_price,
            'chainId': await self.get_chain_id(),
        }

    async def estimate_gas(self, tx: Dict[str, Any], fallback: int) -> int:
        """
        eth_estimateGas with a safety buffer; fall back to `fallback` when the
        node refuses (e.g. the order predicate is currently false).
        """
        self._ensure_initialized()
        try:
            estimated = await asyncio.to_thread(self._w3.eth.estimate_gas, tx)
        except Exception as e:
            logger.warning(f"Gas estimation failed: {e}, using fallback: {fallback}")
            return fallback
        gas_limit = int(int(estimated) * GAS_ESTIMATE_BUFFER)
        logger.info(f"Gas estimate: {estimated}, using limit: {gas_limit}")
        return gas_limit

    async def send_transaction(
        self,
        to: str,
        data: str,
        gas: Optional[int] = None,
        fallback_gas: Optional[int] = None,
        private_key: Optional[str] = None,
        value: int = 0
    ) -> Dict[str, Any]:
        """
        Sign, broadcast and wait for a contract call.

        Args:
            gas: Fixed gas limit; estimated when omitted
            fallback_gas: Limit used when estimation fails (defaults to settings.fill_gas_limit)
            private_key: Signer override (defaults to the connected account)

        Returns:
            The mined receipt with 'transactionHash' as a 0x hex string

        Raises:
            TransactionRevertedError: If mined with status 0
            TransactionError: If the transaction cannot be sent or is not mined in time
        """
        self._ensure_initialized()
        key = private_key or self._private_key
        sender = Account.from_key(key).address
        call = {'from': sender, 'to': to_checksum(to), 'data': data, 'value': value}

        if gas is None:
            gas = await self.estimate_gas(call, fallback_gas or self.settings.fill_gas_limit)

        tx = await self._base_tx_params(sender, gas)
        tx.update({'to': call['to'], 'data': data, 'value': value})
        return await self._sign_send_and_wait(tx, key)

    async def _sign_send_and_wait(self, tx: Dict[str, Any], private_key: str) -> Dict[str, Any]:
        signed = Account.sign_transaction(tx, private_key)
        try:
            tx_hash = await asyncio.to_thread(self._w3.eth.send_raw_transaction, signed.raw_transaction)
        except Exception as e:
            raise TransactionError(f"Failed to send transaction: {e}", original_error=e)

        tx_hash_hex = _hex(tx_hash)
        log_tx_event(logger, 'TX_SENT', tx_hash=tx_hash_hex, to=tx.get('to'), gas=tx.get('gas'))
        logger.info("Waiting for confirmation...")

        try:
            receipt = await asyncio.to_thread(
                self._w3.eth.wait_for_transaction_receipt,
                tx_hash,
                timeout=TX_RECEIPT_TIMEOUT_SEC
            )
        except Exception as e:
            raise TransactionError(
                f"Transaction {tx_hash_hex} not confirmed: {e}",
                tx_hash=tx_hash_hex,
                original_error=e
            )

        receipt = dict(receipt)
        receipt['transactionHash'] = tx_hash_hex
        if receipt.get('status') != 1:
            raise TransactionRevertedError(
                f"Transaction {tx_hash_hex} reverted on-chain",
                tx_hash=tx_hash_hex,
                receipt=receipt
            )

        log_tx_event(
            logger, 'TX_CONFIRMED',
            tx_hash=tx_hash_hex,
            block_number=receipt.get('blockNumber'),
            gas_used=receipt.get('gasUsed')
        )
        return receipt


def _hex(value) -> str:
    if isinstance(value, str):
        return value if value.startswith('0x') else '0x' + value
    return '0x' + bytes(value).hex()

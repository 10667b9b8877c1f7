"""
Minimal ABI fragments for the contracts the engine calls.
"""

ERC20_ABI = [
    {
        "constant": True,
        "inputs": [],
        "name": "totalSupply",
        "outputs": [{"name": "", "type": "uint256"}],
        "type": "function",
    },
    {
        "constant": True,
        "inputs": [{"name": "owner", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "balance", "type": "uint256"}],
        "type": "function",
    },
    {
        "constant": True,
        "inputs": [],
        "name": "symbol",
        "outputs": [{"name": "", "type": "string"}],
        "type": "function",
    },
    {
        "constant": False,
        "inputs": [
            {"name": "spender", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "name": "approve",
        "outputs": [{"name": "", "type": "bool"}],
        "type": "function",
    },
]

RESERVE_ABI = [
    {
        "inputs": [],
        "name": "reserveStatus",
        "outputs": [
            {"name": "reserveValuation", "type": "uint256"},
            {"name": "supplyValuation", "type": "uint256"},
            {"name": "backing", "type": "uint256"},
        ],
        "stateMutability": "view",
        "type": "function",
    },
]

POOL_ABI = [
    {
        "inputs": [],
        "name": "getPoolId",
        "outputs": [{"name": "", "type": "bytes32"}],
        "stateMutability": "view",
        "type": "function",
    },
]

_BATCH_SWAP_STEP = {
    "name": "swaps",
    "type": "tuple[]",
    "components": [
        {"name": "poolId", "type": "bytes32"},
        {"name": "assetInIndex", "type": "uint256"},
        {"name": "assetOutIndex", "type": "uint256"},
        {"name": "amount", "type": "uint256"},
        {"name": "userData", "type": "bytes"},
    ],
}

_FUND_MANAGEMENT = {
    "name": "funds",
    "type": "tuple",
    "components": [
        {"name": "sender", "type": "address"},
        {"name": "fromInternalBalance", "type": "bool"},
        {"name": "recipient", "type": "address"},
        {"name": "toInternalBalance", "type": "bool"},
    ],
}

PROXY_POOL_ABI = [
    {
        "inputs": [],
        "name": "ceilingMultiplier",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            _BATCH_SWAP_STEP,
            {"name": "assets", "type": "address[]"},
            {"name": "amountOut", "type": "uint256"},
            _FUND_MANAGEMENT,
            {"name": "limits", "type": "int256[]"},
            {"name": "deadline", "type": "uint256"},
        ],
        "name": "batchSwapExactOut",
        "outputs": [{"name": "", "type": "int256[]"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [
            _BATCH_SWAP_STEP,
            {"name": "assets", "type": "address[]"},
            {"name": "amountIn", "type": "uint256"},
            {"name": "minTotalAmountOut", "type": "uint256"},
            _FUND_MANAGEMENT,
            {"name": "limits", "type": "int256[]"},
            {"name": "deadline", "type": "uint256"},
        ],
        "name": "batchSwapExactIn",
        "outputs": [{"name": "", "type": "int256[]"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]

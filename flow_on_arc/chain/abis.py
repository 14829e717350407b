"""Minimal JSON ABIs for the four Flow On Arc contracts."""


def _fn(name, inputs, outputs=(), mutability="view"):
    return {
        "name": name,
        "type": "function",
        "stateMutability": mutability,
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "outputs": [{"name": n, "type": t} for n, t in outputs],
    }


ERC20_ABI = [
    _fn("balanceOf", [("owner", "address")], [("", "uint256")]),
    _fn("decimals", [], [("", "uint8")]),
    _fn("allowance", [("owner", "address"), ("spender", "address")], [("", "uint256")]),
    _fn("approve", [("spender", "address"), ("amount", "uint256")], [("", "bool")], "nonpayable"),
]

AMM_ROUTER_ABI = [
    _fn(
        "getAmountsOut",
        [("amountIn", "uint256"), ("path", "address[]")],
        [("amounts", "uint256[]")],
    ),
    _fn(
        "swapExactTokensForTokens",
        [
            ("amountIn", "uint256"),
            ("amountOutMin", "uint256"),
            ("path", "address[]"),
            ("to", "address"),
            ("deadline", "uint256"),
        ],
        [("amounts", "uint256[]")],
        "nonpayable",
    ),
    _fn("getPoolId", [("tokenA", "address"), ("tokenB", "address")], [("", "bytes32")], "pure"),
    _fn(
        "pools",
        [("poolId", "bytes32")],
        [
            ("token0", "address"),
            ("token1", "address"),
            ("reserve0", "uint256"),
            ("reserve1", "uint256"),
        ],
    ),
    _fn("userLiquidity", [("poolId", "bytes32"), ("user", "address")], [("", "uint256")]),
    _fn("totalLiquidity", [("poolId", "bytes32")], [("", "uint256")]),
    _fn(
        "addLiquidity",
        [
            ("tokenA", "address"),
            ("tokenB", "address"),
            ("amountA", "uint256"),
            ("amountB", "uint256"),
        ],
        mutability="nonpayable",
    ),
    _fn(
        "removeLiquidity",
        [("tokenA", "address"), ("tokenB", "address"), ("shares", "uint256")],
        mutability="nonpayable",
    ),
]

LENDING_POOL_ABI = [
    _fn("supplyCollateral", [("token", "address"), ("amount", "uint256")], mutability="nonpayable"),
    _fn("withdrawCollateral", [("token", "address"), ("amount", "uint256")], mutability="nonpayable"),
    _fn("borrow", [("token", "address"), ("amount", "uint256")], mutability="nonpayable"),
    _fn("repay", [("token", "address"), ("amount", "uint256")], mutability="nonpayable"),
    _fn(
        "getUserAccountData",
        [("user", "address")],
        [
            ("totalCollateralUSD", "uint256"),
            ("totalDebtUSD", "uint256"),
            ("availableBorrowsUSD", "uint256"),
            ("healthFactor", "uint256"),
        ],
    ),
    _fn("getUserCollateral", [("user", "address"), ("token", "address")], [("", "uint256")]),
    _fn("getUserDebt", [("user", "address"), ("token", "address")], [("", "uint256")]),
    _fn(
        "getReserveData",
        [("token", "address")],
        [
            ("availableLiquidity", "uint256"),
            ("totalSupplied", "uint256"),
            ("totalBorrowed", "uint256"),
            ("ltv", "uint256"),
            ("priceUSD", "uint256"),
        ],
    ),
]

FAUCET_ABI = [
    _fn("claim", [], mutability="nonpayable"),
    _fn("getUserTier", [("user", "address")], [("", "int256")]),
    _fn("nextClaimTime", [("user", "address")], [("", "uint256")]),
    _fn(
        "tiers",
        [("index", "uint256")],
        [
            ("usdcThreshold", "uint256"),
            ("rewardAmount", "uint256"),
            ("cooldown", "uint256"),
        ],
    ),
]

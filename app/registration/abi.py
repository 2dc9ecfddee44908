# ABI fragments of the deployed Blockon contracts that the pipeline touches.

FACTORY_ABI = [
    {
        "type": "function",
        "name": "createContractByAccountAddress",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "_agentAccount", "type": "address"},
            {"name": "_sellerAccount", "type": "address"},
            {"name": "_buyerAccount", "type": "address"},
            {"name": "_contractType", "type": "uint8"},
        ],
        "outputs": [],
    },
]

ACCOUNT_ABI = [
    {
        "type": "event",
        "name": "UpdateContract",
        "anonymous": False,
        "inputs": [
            {"name": "contractIndex", "type": "uint256", "indexed": False},
        ],
    },
]

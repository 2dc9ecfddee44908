#app/models/enums.py
from __future__ import annotations
from enum import Enum, IntEnum


class ContractType(IntEnum):
    # on-chain uint8 values of createContractByAccountAddress
    MONTHLY_RENT = 1  # wolse
    DEPOSIT_LEASE = 2  # jeonse
    SALE = 3  # maemae


class BuildingType(str, Enum):
    jutaek = "jutaek"
    apartment = "apartment"
    sangga = "sangga"
    officetel = "officetel"

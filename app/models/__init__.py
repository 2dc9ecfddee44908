from app.models.user import User
from app.models.contract import ContractRecord

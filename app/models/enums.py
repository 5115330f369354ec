from enum import Enum


class Role(str, Enum):
    user = "user"
    admin = "admin"
    provider = "provider"


class RentalStatus(str, Enum):
    pending = "pending"
    active = "active"
    completed = "completed"
    cancelled = "cancelled"
    # Returned but not yet settled with credits
    unpaid = "unpaid"


class TransactionType(str, Enum):
    deposit = "deposit"
    payment = "payment"
    refund = "refund"
    withdrawal = "withdrawal"
    system = "system"
    payout = "payout"


class TransactionStatus(str, Enum):
    pending = "pending"
    completed = "completed"
    failed = "failed"
    reversed = "reversed"


class AccountType(str, Enum):
    user = "user"
    provider = "provider"


class CreditAction(str, Enum):
    add = "add"
    use = "use"
    refund = "refund"


class VehicleType(str, Enum):
    sedan = "sedan"
    suv = "suv"
    hatchback = "hatchback"
    convertible = "convertible"
    truck = "truck"
    van = "van"
    other = "other"


# Statuses that hold a vehicle and count against the customer's concurrent limit
OPEN_RENTAL_STATUSES = (RentalStatus.pending.value, RentalStatus.active.value)

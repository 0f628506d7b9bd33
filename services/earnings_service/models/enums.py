"""Enums for the Earnings Service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class TransactionStatus(str, enum.Enum):
    PENDING = "pending"
    SUCCESS = "success"


class TransactionPurpose(str, enum.Enum):
    SIGNUP = "signup"
    COURSE_PURCHASE = "course_purchase"
    REFERRAL_BONUS = "referral_bonus"
    TASK_REWARD = "task_reward"


class ReferralStatus(str, enum.Enum):
    PAID = "paid"


class WithdrawalStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class SubmissionStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ReviewAction(str, enum.Enum):
    APPROVE = "approve"
    REJECT = "reject"

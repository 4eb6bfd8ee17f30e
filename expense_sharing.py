from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP
import heapq
import logging
import os


logger = logging.getLogger(__name__)


# ==================== Configuration ====================

CENT = Decimal('0.01')
PERCENT_TOTAL = Decimal('100')
NO_BALANCES = "No balances"
LOG_LEVEL_ENV = "EXPENSE_SHARING_LOG_LEVEL"

Amount = Union[Decimal, int, float, str]


def to_decimal(value: Amount) -> Decimal:
    """Convert user input to Decimal without float artifacts"""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_money(value: Amount) -> Decimal:
    """Round a value to whole cents"""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def configure_logging(level: str = "WARNING") -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ==================== Errors ====================

class ExpenseSharingError(Exception):
    """Base error for the expense sharing core"""


class ValidationError(ExpenseSharingError, ValueError):
    """Raised when an expense or its split configuration is invalid"""


# ==================== Enums ====================

class SplitType(Enum):
    """Types of expense splits"""
    EQUAL = "EQUAL"
    EXACT = "EXACT"
    PERCENT = "PERCENT"


# ==================== Core Models ====================

@dataclass(frozen=True)
class User:
    """Represents a user in the system. Identity is the user id."""
    user_id: str
    name: str = field(compare=False)
    email: str = field(compare=False)
    phone: str = field(compare=False)

    def __repr__(self) -> str:
        return f"User({self.user_id}, {self.name})"


class UserRegistry:
    """Keyed store of registered users"""

    def __init__(self):
        self._users: Dict[str, User] = {}

    def add_user(self, user: User) -> None:
        """Register a user, replacing any existing record with the same id"""
        if user.user_id in self._users:
            logger.warning("Replacing registered user %s", user.user_id)
        self._users[user.user_id] = user

    def get_user(self, user_id: str) -> Optional[User]:
        """Get user by ID, or None when unknown"""
        return self._users.get(user_id)

    def get_users(self) -> List[User]:
        return list(self._users.values())

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._users

    def __len__(self) -> int:
        return len(self._users)


# ==================== Strategy Pattern: Split Strategies ====================

class SplitStrategy(ABC):
    """Abstract strategy for splitting an amount among participants"""

    @abstractmethod
    def split(self, amount: Amount, participants: Sequence[User],
              shares: Optional[Sequence[Amount]] = None) -> Dict[User, Decimal]:
        """
        Calculate how much each participant owes.

        Returns one entry per participant, in participant order. Implementations
        are pure: they never touch a ledger and raise ValidationError before
        returning anything when their inputs are inconsistent.
        """
        pass

    @staticmethod
    def _check_participants(participants: Sequence[User]) -> None:
        if not participants:
            raise ValidationError("At least one participant is required")
        ids = [user.user_id for user in participants]
        if len(set(ids)) != len(ids):
            raise ValidationError(f"Duplicate participants: {ids}")

    @staticmethod
    def _check_shares(participants: Sequence[User],
                      shares: Optional[Sequence[Amount]]) -> List[Decimal]:
        if shares is None:
            raise ValidationError("Shares are required for this split type")
        if len(shares) != len(participants):
            raise ValidationError(
                f"Expected {len(participants)} shares, got {len(shares)}"
            )
        return [to_decimal(share) for share in shares]


class EqualSplitStrategy(SplitStrategy):
    """Split equally; leftover cents go to the first participant"""

    def split(self, amount: Amount, participants: Sequence[User],
              shares: Optional[Sequence[Amount]] = None) -> Dict[User, Decimal]:
        self._check_participants(participants)
        total = to_decimal(amount)
        count = len(participants)

        per_person = (total / count).quantize(CENT, rounding=ROUND_DOWN)
        remainder = total - per_person * count

        splits: Dict[User, Decimal] = {}
        for index, user in enumerate(participants):
            splits[user] = per_person + remainder if index == 0 else per_person
        return splits


class ExactSplitStrategy(SplitStrategy):
    """Split by literal amounts that must add up to the total"""

    def split(self, amount: Amount, participants: Sequence[User],
              shares: Optional[Sequence[Amount]] = None) -> Dict[User, Decimal]:
        self._check_participants(participants)
        exact_amounts = self._check_shares(participants, shares)
        total = to_decimal(amount)

        if sum(exact_amounts, Decimal('0')) != total:
            logger.warning("Exact shares %s do not sum to %s", exact_amounts, total)
            raise ValidationError("Exact shares do not sum up to the total amount")

        return dict(zip(participants, exact_amounts))


class PercentSplitStrategy(SplitStrategy):
    """
    Split by percentage.

    Each share is rounded to the cent on its own, so the shares may miss the
    total by up to a cent per participant.
    """

    def split(self, amount: Amount, participants: Sequence[User],
              shares: Optional[Sequence[Amount]] = None) -> Dict[User, Decimal]:
        self._check_participants(participants)
        percentages = self._check_shares(participants, shares)
        total = to_decimal(amount)

        if sum(percentages, Decimal('0')) != PERCENT_TOTAL:
            logger.warning("Percent shares %s do not sum to 100", percentages)
            raise ValidationError("Percent shares do not sum up to 100%")

        return {
            user: to_money(total * percentage / PERCENT_TOTAL)
            for user, percentage in zip(participants, percentages)
        }


class SplitStrategyFactory:
    """Creates split strategies by type"""

    _strategies = {
        SplitType.EQUAL: EqualSplitStrategy,
        SplitType.EXACT: ExactSplitStrategy,
        SplitType.PERCENT: PercentSplitStrategy,
    }

    @classmethod
    def create(cls, split_type: SplitType) -> SplitStrategy:
        return cls._strategies[split_type]()


# ==================== Balance Ledger ====================

class BalanceLedger:
    """Directed record of who owes whom"""

    def __init__(self):
        # balances[creditor][debtor] = amount debtor owes creditor
        self._balances: Dict[User, Dict[User, Decimal]] = {}

    def add_balance(self, debtor: User, creditor: User, amount: Amount) -> None:
        """
        Increase what debtor owes creditor.

        Amounts accumulate algebraically and may go negative. The opposite
        direction (creditor owing debtor) is a separate entry and is never
        netted against this one.
        """
        owed_to_creditor = self._balances.setdefault(creditor, {})
        current = owed_to_creditor.get(debtor, Decimal('0'))
        owed_to_creditor[debtor] = to_money(current + to_decimal(amount))
        logger.debug("Posted %s: %s owes %s (now %s)", amount,
                     debtor.user_id, creditor.user_id, owed_to_creditor[debtor])

    def get_balances(self) -> Dict[User, Dict[User, Decimal]]:
        return self._balances

    def get_balance_for_user(self, user: User) -> Optional[Dict[User, Decimal]]:
        """Who owes this user and how much, or None if never a creditor"""
        return self._balances.get(user)

    def get_net_balance(self, user1: User, user2: User) -> Decimal:
        """Net balance between two users (positive = user1 owes user2)"""
        owes = self._balances.get(user2, {}).get(user1, Decimal('0'))
        owed = self._balances.get(user1, {}).get(user2, Decimal('0'))
        return owes - owed

    def get_simplified_balances(self) -> Dict[Tuple[User, User], Decimal]:
        """One (debtor, creditor) entry per pair with a nonzero net"""
        simplified: Dict[Tuple[User, User], Decimal] = {}
        processed = set()

        for creditor, owed in self._balances.items():
            for debtor in owed:
                if (debtor, creditor) in processed:
                    continue
                processed.add((debtor, creditor))
                processed.add((creditor, debtor))

                net = self.get_net_balance(debtor, creditor)
                if net > 0:
                    simplified[(debtor, creditor)] = net
                elif net < 0:
                    simplified[(creditor, debtor)] = -net

        return simplified

    def get_net_positions(self) -> Dict[User, Decimal]:
        """Overall position per user (positive = owes money)"""
        positions: Dict[User, Decimal] = {}
        for creditor, owed in self._balances.items():
            for debtor, amount in owed.items():
                positions[debtor] = positions.get(debtor, Decimal('0')) + amount
                positions[creditor] = positions.get(creditor, Decimal('0')) - amount
        return positions

    def show_balances(self, out: Callable[[str], None] = print) -> None:
        BalanceReport(self, out).show_balances()

    def show_balance_for_user(self, user: User,
                              out: Callable[[str], None] = print) -> None:
        BalanceReport(self, out).show_balance_for_user(user)


# ==================== Expense ====================

class Expense:
    """
    A payment made by one user on behalf of a set of participants.

    Executing posts each non-payer's share to the ledger. Executing the same
    expense twice posts it twice.
    """

    _expense_counter = 0

    def __init__(self, paid_by: User, amount: Amount,
                 participants: Sequence[User],
                 split_strategy: SplitStrategy,
                 shares: Optional[Sequence[Amount]] = None,
                 description: str = ""):
        total = to_decimal(amount)
        if total <= 0:
            raise ValidationError(f"Expense amount must be positive, got {amount}")
        if not participants:
            raise ValidationError("Expense needs at least one participant")

        Expense._expense_counter += 1
        self._expense_id = f"EXP-{Expense._expense_counter:08d}"
        self._paid_by = paid_by
        self._amount = total
        self._participants: Tuple[User, ...] = tuple(participants)
        self._split_strategy = split_strategy
        self._shares: Optional[Tuple[Amount, ...]] = (
            tuple(shares) if shares is not None else None
        )
        self._description = description

    def get_id(self) -> str:
        return self._expense_id

    def get_paid_by(self) -> User:
        return self._paid_by

    def get_amount(self) -> Decimal:
        return self._amount

    def get_participants(self) -> Tuple[User, ...]:
        return self._participants

    def get_shares(self) -> Optional[Tuple[Amount, ...]]:
        return self._shares

    def get_description(self) -> str:
        return self._description

    def get_splits(self) -> Dict[User, Decimal]:
        """Compute the split without posting anything"""
        return self._split_strategy.split(self._amount, self._participants, self._shares)

    def execute(self, ledger: BalanceLedger) -> None:
        """Post every participant's share, except the payer's, to the ledger"""
        splits = self.get_splits()

        for user, split_amount in splits.items():
            if user != self._paid_by:
                ledger.add_balance(debtor=user, creditor=self._paid_by, amount=split_amount)

        logger.info("Executed %s: %s paid %s split by %s", self._expense_id,
                    self._paid_by.user_id, self._amount,
                    type(self._split_strategy).__name__)

    def __repr__(self) -> str:
        return f"Expense({self._expense_id}, {self._paid_by.user_id}, {self._amount})"


# ==================== Settlement Optimizer ====================

class SettlementOptimizer:
    """Plans payments that would clear all net positions"""

    @staticmethod
    def minimize_transactions(ledger: BalanceLedger,
                              users: Optional[Sequence[User]] = None
                              ) -> List[Tuple[User, User, Decimal]]:
        """
        Greedy plan matching the largest debtor with the largest creditor.
        Returns (from_user, to_user, amount) tuples. The ledger is not modified.
        """
        positions = ledger.get_net_positions()
        if users is not None:
            positions = {user: positions[user] for user in users if user in positions}

        # Heaps keyed on negated amounts; user id breaks ties
        debtors = []
        creditors = []
        for user, balance in positions.items():
            if balance > 0:
                heapq.heappush(debtors, (-balance, user.user_id, user))
            elif balance < 0:
                heapq.heappush(creditors, (balance, user.user_id, user))

        transactions = []
        while debtors and creditors:
            debt_amount, _, debtor = heapq.heappop(debtors)
            credit_amount, _, creditor = heapq.heappop(creditors)
            debt_amount = -debt_amount
            credit_amount = -credit_amount

            settlement = min(debt_amount, credit_amount)
            transactions.append((debtor, creditor, settlement))

            remaining_debt = debt_amount - settlement
            remaining_credit = credit_amount - settlement
            if remaining_debt > 0:
                heapq.heappush(debtors, (-remaining_debt, debtor.user_id, debtor))
            if remaining_credit > 0:
                heapq.heappush(creditors, (-remaining_credit, creditor.user_id, creditor))

        return transactions


# ==================== Reporting ====================

class BalanceReport:
    """Renders ledger contents as text lines to an output sink"""

    def __init__(self, ledger: BalanceLedger, out: Callable[[str], None] = print):
        self._ledger = ledger
        self._out = out

    def show_balances(self) -> None:
        """Every nonzero directed entry, one line each"""
        is_empty = True
        for creditor, owed in self._ledger.get_balances().items():
            for debtor, amount in owed.items():
                if amount != 0:
                    is_empty = False
                    self._out(f"{debtor.user_id} owes {creditor.user_id}: {amount:.2f}")

        if is_empty:
            self._out(NO_BALANCES)

    def show_balance_for_user(self, user: User) -> None:
        """Entries where the user is the creditor"""
        balances = self._ledger.get_balance_for_user(user)
        if balances is None:
            self._out(NO_BALANCES)
            return

        is_empty = True
        for other, amount in balances.items():
            if amount == 0:
                continue
            is_empty = False
            if amount > 0:
                self._out(f"{other.user_id} owes {user.user_id}: {amount:.2f}")
            else:
                # Only reachable when a negative amount was posted into this slot
                self._out(f"{user.user_id} owes {other.user_id}: {-amount:.2f}")

        if is_empty:
            self._out(NO_BALANCES)

    def show_net_balances(self) -> None:
        """Both directions combined into a single line per pair"""
        simplified = self._ledger.get_simplified_balances()
        if not simplified:
            self._out(NO_BALANCES)
            return

        for (debtor, creditor), amount in simplified.items():
            self._out(f"{debtor.user_id} owes {creditor.user_id}: {amount:.2f}")

    def show_settlement_plan(self, users: Optional[Sequence[User]] = None) -> None:
        transactions = SettlementOptimizer.minimize_transactions(self._ledger, users)
        if not transactions:
            self._out("All settled up!")
            return

        for i, (from_user, to_user, amount) in enumerate(transactions, 1):
            self._out(f"{i}. {from_user.user_id} pays {to_user.user_id}: {amount:.2f}")


# ==================== Demo Usage ====================

def main():
    """Demo the expense sharing ledger"""
    configure_logging(os.environ.get(LOG_LEVEL_ENV, "WARNING"))

    registry = UserRegistry()
    ledger = BalanceLedger()

    for i in range(1, 5):
        registry.add_user(User(f"u{i}", f"User{i}", f"user{i}@example.com", f"123456789{i - 1}"))

    user1 = registry.get_user("u1")
    user2 = registry.get_user("u2")
    user3 = registry.get_user("u3")
    user4 = registry.get_user("u4")
    everyone = [user1, user2, user3, user4]

    Expense(user1, 1000, everyone, EqualSplitStrategy()).execute(ledger)
    Expense(user1, 1250, [user2, user3], ExactSplitStrategy(), [370, 880]).execute(ledger)
    Expense(user4, 1200, everyone, PercentSplitStrategy(), [40, 20, 20, 20]).execute(ledger)

    print("All balances:")
    ledger.show_balances()

    print("\nBalances for user u1:")
    ledger.show_balance_for_user(user1)

    print("\nNet balances:")
    report = BalanceReport(ledger)
    report.show_net_balances()

    print("\nSettlement plan:")
    report.show_settlement_plan()

    print("\nRejected expense:")
    try:
        Expense(user2, 1250, [user2, user3], ExactSplitStrategy(), [370, 770]).execute(ledger)
    except ValidationError as e:
        print(f"Expense not recorded: {e}")


if __name__ == "__main__":
    main()

from __future__ import annotations

from typing import List

import pytest

from expense_sharing import BalanceLedger, User, UserRegistry


@pytest.fixture
def users() -> List[User]:
    return [
        User(f"u{i}", f"User{i}", f"user{i}@example.com", f"123456789{i - 1}")
        for i in range(1, 5)
    ]


@pytest.fixture
def registry(users) -> UserRegistry:
    reg = UserRegistry()
    for user in users:
        reg.add_user(user)
    return reg


@pytest.fixture
def ledger() -> BalanceLedger:
    return BalanceLedger()


@pytest.fixture
def lines() -> List[str]:
    """Output sink for reports; pass ``lines.append`` as ``out``."""
    return []

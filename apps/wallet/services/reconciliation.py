"""
Ledger consistency checks.

An account is consistent when its transactions, read in sequence order,
replay to its stored balance: amounts sum to the balance, every
``balance_after`` equals the running total, and sequences run 1..version
without gaps.
"""

import logging
from decimal import Decimal

from apps.wallet.models import CreditAccount

logger = logging.getLogger(__name__)


def check_ledger(account: CreditAccount) -> list:
    """
    Replay an account's transactions and list every inconsistency found.

    Returns:
        List of human-readable problems; empty when the ledger is consistent.
    """
    problems = []
    running = Decimal('0.00')
    expected_sequence = 1

    for txn in account.transactions.order_by('sequence'):
        if txn.sequence != expected_sequence:
            problems.append(
                f"sequence {txn.sequence} found where {expected_sequence} was expected"
            )
            expected_sequence = txn.sequence

        running += txn.amount
        if txn.balance_after != running:
            problems.append(
                f"transaction {txn.sequence}: balance_after {txn.balance_after}, replayed {running}"
            )
        if running < 0:
            problems.append(f"transaction {txn.sequence}: balance went negative ({running})")

        expected_sequence += 1

    if running != account.balance:
        problems.append(f"stored balance {account.balance}, transactions sum to {running}")
    if expected_sequence - 1 != account.version:
        problems.append(f"version {account.version}, last sequence {expected_sequence - 1}")

    if problems:
        logger.error("Ledger mismatch on account %s: %s", account.id, '; '.join(problems))

    return problems


def reconcile_all(queryset=None) -> dict:
    """
    Check every account.

    Returns:
        dict mapping account id to its problems, only for inconsistent accounts
    """
    queryset = queryset if queryset is not None else CreditAccount.objects.all()
    report = {}
    for account in queryset.iterator():
        problems = check_ledger(account)
        if problems:
            report[account.id] = problems
    return report

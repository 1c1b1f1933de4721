"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the token-sale ledger.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. conservation.py - Balances net to zero; value and tokens are accounted for
2. cap.py - No sequence of purchases issues more than the cap
3. atomicity.py - All-or-nothing transaction semantics
4. idempotency.py - Duplicate execution handling
5. sequencing.py - Stale nonces and stale state are rejected
6. canonicalization.py - Content-addressable identity
7. determinism.py - Reproducible behavior
8. temporal.py - Time, block numbers and clone_at/replay

These tests use hypothesis for property-based testing.
"""

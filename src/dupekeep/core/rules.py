"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/rules.py
Retention rules: decides which members of a hash bucket are removal candidates.

Each bucket is ordered once, lexically by path. Every candidate is then checked
against the rules in fixed precedence; the first rule that fires marks it and the
remaining rules are skipped for that candidate:

    1. keep-recent  : not the newest member
    2. keep-oldest  : not the oldest member
    3. keep-first   : not the lexically first member
    4. keep-last    : not the lexically last member
    5. delete-match : path matches the delete pattern
    6. keep-match   : path does not match the keep pattern

Marking stops as soon as only one unmarked member would remain, so at least one
copy always survives. With no rule configured nothing is marked.
"""

import logging
from typing import List, Optional

from dupekeep.core.models import BucketDecision, FileRecord, RetentionPolicy, RetentionRule

logger = logging.getLogger(__name__)


class RuleEngine:
    def __init__(self, policy: RetentionPolicy):
        self.policy = policy

    def evaluate(self, digest: bytes, records: List[FileRecord]) -> BucketDecision:
        ordered = sorted(records, key=lambda r: r.path)
        decision = BucketDecision(digest=digest, ordered=ordered)
        if not self.policy.is_active or len(ordered) < 2:
            return decision

        # Computed once per bucket; sorted() is stable so ties keep lexical order
        newest = sorted(ordered, key=lambda r: r.mtime_ns, reverse=True)[0]
        oldest = sorted(ordered, key=lambda r: r.mtime_ns)[0]
        last_index = len(ordered) - 1

        processed = 0
        for i, record in enumerate(ordered):
            # no duplicates left
            if len(ordered) - processed < 2:
                break

            reason = self._match(record, i, last_index, newest, oldest)
            if reason is None:
                continue

            processed += 1
            decision.marked.append((record, reason))
            logger.debug(f"  {record.path} ↳ {reason}")

        return decision

    def _match(
            self,
            record: FileRecord,
            i: int,
            last_index: int,
            newest: FileRecord,
            oldest: FileRecord
    ) -> Optional[str]:
        rule = self.policy.rule
        if rule == RetentionRule.KEEP_RECENT and record is not newest:
            return "not most recent entry"
        if rule == RetentionRule.KEEP_OLDEST and record is not oldest:
            return "not oldest entry"
        if rule == RetentionRule.KEEP_FIRST and i != 0:
            return "not first entry"
        if rule == RetentionRule.KEEP_LAST and i != last_index:
            return "not last entry"
        if self.policy.delete_pattern is not None and self.policy.delete_pattern.search(record.path):
            return "matches delete pattern"
        if self.policy.keep_pattern is not None and not self.policy.keep_pattern.search(record.path):
            return "does not match keep pattern"
        return None

from dupekeep.core.models import RetentionRule

RULE_ALIASES = {
    "keep-recent": RetentionRule.KEEP_RECENT,
    "keep-oldest": RetentionRule.KEEP_OLDEST,
    "keep-first": RetentionRule.KEEP_FIRST,
    "keep-last": RetentionRule.KEEP_LAST,
}

RULE_HELP_TEXT = {
    RetentionRule.KEEP_RECENT: "Keep the most recently modified copy and delete all others",
    RetentionRule.KEEP_OLDEST: "Keep the oldest copy and delete all others",
    RetentionRule.KEEP_FIRST: "Keep the lexically first path and delete all others",
    RetentionRule.KEEP_LAST: "Keep the lexically last path and delete all others",
}

DELETE_MATCH_HELP_TEXT = (
    "Delete duplicate files whose path matches the given regex\n"
    "Example    : %(prog)s ~/Photos --delete-match '/tmp/|/Downloads/'\n"
)

KEEP_MATCH_HELP_TEXT = (
    "Delete all duplicate files except those whose path matches the given regex\n"
    "Example    : %(prog)s ~/Photos --keep-match '^/home/me/Archive/'\n"
)

EPILOG_TEXT = """
Examples:
  Report duplicates in two folders (nothing is deleted without a rule)
  %(prog)s ~/Downloads ~/Documents

  Build or refresh a persistent index only, no duplicate handling
  %(prog)s --index ~/.dupekeep.idx --index-only ~/Photos

  Reuse the index and keep the lexically first copy, preview only
  %(prog)s --index ~/.dupekeep.idx --keep-first --dry-run ~/Photos

  Same as above, but actually move the other copies to trash
  %(prog)s --index ~/.dupekeep.idx --keep-first --trash ~/Photos

  Keep everything under Archive, delete the copies elsewhere
  %(prog)s --keep-match '/Archive/' ~/Photos ~/Archive

At least one copy of every duplicate set is always kept.
"""

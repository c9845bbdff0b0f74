from .ledger import (
    IssueParams,
    assert_unused,
    attach_resource,
    consume_category_quota,
    consume_edit_quota,
    expire_lapsed_entitlements,
    issue,
    list_active_for_user,
)

__all__ = [
    "IssueParams",
    "assert_unused",
    "attach_resource",
    "consume_category_quota",
    "consume_edit_quota",
    "expire_lapsed_entitlements",
    "issue",
    "list_active_for_user",
]

from issuecache.models import IssueRecord, Snapshot
from issuecache.tree import IssueTree


def _snapshot() -> Snapshot:
    return Snapshot(
        issues=[
            IssueRecord(number=1, title="Login page", body="- [x] form\n- [ ] tests"),
            IssueRecord(number=2, title="Old bug", state="closed"),
        ],
        pull_requests=[
            IssueRecord(number=3, title="Add login", extra={"pull_request": {}}),
        ],
    )


def test_default_sections_split_by_state():
    issues, prs = IssueTree.from_snapshot(_snapshot()).sections()

    assert issues.title == "Issues (2)"
    assert [s.title for s in issues.sections] == ["Open Issues (1)", "Closed Issues (1)"]
    assert issues.expanded and not issues.sections[1].expanded
    assert prs.title == "Pull Requests (1)"
    assert [s.title for s in prs.sections] == ["Open Pull Requests (1)", "Closed Pull Requests (0)"]


def test_search_section_flattens_matches():
    (results,) = IssueTree.from_snapshot(_snapshot()).sections("LOGIN")

    assert results.label == 'Search Results for "LOGIN"'
    assert [n.number for n in results.nodes] == [1, 3]


def test_find_reaches_sub_items():
    tree = IssueTree.from_snapshot(_snapshot())

    assert tree.find(2).title == "Old bug"
    item = tree.find("1.2")
    assert item is not None and item.is_sub_item
    assert item.title == "tests"
    assert tree.find("9") is None


def test_walk_orders_parents_before_children():
    tree = IssueTree.from_snapshot(_snapshot())
    numbers = [str(n.number) for n in tree.walk()]
    assert numbers == ["1", "1.progress", "1.1", "1.2", "2", "3"]

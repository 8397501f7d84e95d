import itertools

import pytest

from connection_tree.models import ConnectionConfig, ConnectionRecord
from connection_tree.tree import ConnectionTreeBuilder, DuplicateIdentifierError, build_tree
from dn.names import parse

BASE = "dc=example,dc=com"

RECORDS = [
    ("cn=alpha,ou=groupA,dc=example,dc=com", ConnectionConfig(protocol="rdp")),
    ("cn=beta,ou=groupA,dc=example,dc=com", ConnectionConfig(protocol="ssh")),
    ("cn=gamma,ou=groupB,dc=example,dc=com", ConnectionConfig(protocol="vnc")),
    ("cn=delta,ou=deep,ou=groupB,dc=example,dc=com", ConnectionConfig(protocol="ssh")),
    ("cn=top,dc=example,dc=com", ConnectionConfig(protocol="rdp")),
]


def shape(tree):
    """Identifiers and parent/child edges, independent of insertion order."""
    folders = {
        identifier: (folder.parent_identifier, frozenset(folder.child_folder_ids), frozenset(folder.child_record_ids))
        for identifier, folder in tree.folders.items()
    }
    records = {identifier: record.parent_identifier for identifier, record in tree.records.items()}
    return folders, records


def test_shared_prefix_produces_one_folder():
    tree = build_tree(BASE, RECORDS[:3])
    group_a = tree.folders["ou=groupa,dc=example,dc=com"]
    assert group_a.name == "ou=groupA"
    assert group_a.child_record_ids == {
        "cn=alpha,ou=groupa,dc=example,dc=com",
        "cn=beta,ou=groupa,dc=example,dc=com",
    }
    assert {tree.records[r].name for r in group_a.child_record_ids} == {"alpha", "beta"}
    assert [f for f in tree.folders if f.startswith("ou=groupa")] == ["ou=groupa,dc=example,dc=com"]


def test_sibling_groups_share_the_base_folder():
    tree = build_tree(BASE, RECORDS[:3])
    base = tree.root_folder()
    assert base.identifier == BASE
    assert base.child_folder_ids == {"ou=groupa,dc=example,dc=com", "ou=groupb,dc=example,dc=com"}
    assert tree.folders["ou=groupb,dc=example,dc=com"].parent_identifier == BASE
    assert tree.folders["ou=groupb,dc=example,dc=com"].child_record_ids == {"cn=gamma,ou=groupb,dc=example,dc=com"}


def test_folders_hang_below_the_synthetic_root():
    tree = build_tree(BASE, RECORDS)
    root = tree.synthetic_root()
    assert root.identifier == "ROOT"
    assert root.is_root
    assert root.child_folder_ids == {"dc=com"}
    assert tree.folders["dc=com"].child_folder_ids == {BASE}
    assert tree.folders[BASE].parent_identifier == "dc=com"


def test_base_chain_exists_without_records():
    tree = build_tree(BASE, [])
    assert set(tree.folders) == {"ROOT", "dc=com", BASE}
    assert tree.root_folder().child_folder_ids == set()
    assert tree.records == {}


def test_records_point_to_their_immediate_parent():
    tree = build_tree(BASE, RECORDS)
    assert tree.records["cn=top,dc=example,dc=com"].parent_identifier == BASE
    delta = tree.records["cn=delta,ou=deep,ou=groupb,dc=example,dc=com"]
    assert delta.parent_identifier == "ou=deep,ou=groupb,dc=example,dc=com"
    assert delta.payload.protocol == "ssh"


def test_no_dangling_parents_and_chains_reach_the_root():
    tree = build_tree(BASE, RECORDS)
    for folder in tree.folders.values():
        if folder.parent_identifier is not None:
            parent = tree.folders[folder.parent_identifier]
            assert folder.identifier in parent.child_folder_ids
            assert len(parent.dn) == len(folder.dn) - 1
    for identifier in tree.records:
        chain = tree.parent_chain(identifier)
        assert chain[-1] is tree.synthetic_root()
        assert len(chain) == len(parse(identifier))


@pytest.mark.parametrize("order", list(itertools.permutations(range(len(RECORDS))))[::17])
def test_build_is_order_independent(order):
    expected = shape(build_tree(BASE, RECORDS))
    assert shape(build_tree(BASE, [RECORDS[i] for i in order])) == expected


def test_rebuild_yields_identical_directories():
    first = build_tree(BASE, RECORDS)
    second = build_tree(BASE, RECORDS)
    assert shape(first) == shape(second)
    assert first.folders is not second.folders
    assert first.folders[BASE] is not second.folders[BASE]


def test_ensure_folder_path_is_idempotent():
    builder = ConnectionTreeBuilder(BASE)
    first = builder.ensure_folder_path("ou=deep,ou=groupa,dc=example,dc=com")
    count = len(builder.folders)
    second = builder.ensure_folder_path(parse("ou=deep,ou=groupa,dc=example,dc=com"))
    assert first is second
    assert len(builder.folders) == count
    assert builder.ensure_folder_path(BASE) is builder.root_lookup()


def test_ensure_folder_path_outside_the_base():
    builder = ConnectionTreeBuilder(BASE)
    folder = builder.ensure_folder_path("ou=x,dc=other,dc=org")
    assert folder.identifier == "ou=x,dc=other,dc=org"
    assert builder.folders["dc=org"].parent_identifier == "ROOT"


def test_ensure_folder_path_reuses_case_variants():
    builder = ConnectionTreeBuilder(BASE)
    first = builder.ensure_folder_path("ou=GroupA,dc=example,dc=com")
    assert builder.ensure_folder_path("OU=groupa,DC=Example,dc=com") is first


CASE_VARIANTS = [
    ("cn=alpha,ou=GroupA,dc=example,dc=com", None),
    ("cn=beta,ou=groupa,dc=example,dc=com", None),
    ("cn=gamma,OU=GROUPA,dc=Example,dc=com", None),
]


@pytest.mark.parametrize("order", list(itertools.permutations(range(len(CASE_VARIANTS)))))
def test_case_variants_give_the_same_tree_in_any_order(order):
    expected = build_tree(BASE, CASE_VARIANTS)
    tree = build_tree(BASE, [CASE_VARIANTS[i] for i in order])
    assert shape(tree) == shape(expected)
    assert list(tree.root_folder().child_folder_ids) == ["ou=groupa,dc=example,dc=com"]
    assert tree.folders["ou=groupa,dc=example,dc=com"].name == "ou=GROUPA"
    assert {f.name for f in tree.folders.values()} == {f.name for f in expected.folders.values()}


def test_malformed_path_leaves_directory_untouched():
    builder = ConnectionTreeBuilder(BASE)
    before = dict(builder.folders)
    with pytest.raises(ValueError):
        builder.ensure_folder_path("ou=x,,dc=example,dc=com")
    assert builder.folders == before


def test_malformed_records_are_skipped():
    tree = build_tree(BASE, RECORDS[:1] + [("cn=broken,,dc=com", None)])
    assert list(tree.records) == ["cn=alpha,ou=groupa,dc=example,dc=com"]
    assert len(tree.skipped) == 1
    assert tree.skipped[0].identifier == "cn=broken,,dc=com"
    assert tree.skipped[0].reason == "empty component"


def test_duplicate_identifier_is_a_contract_violation():
    builder = ConnectionTreeBuilder(BASE)
    builder.insert_record(ConnectionRecord(identifier="cn=alpha,dc=example,dc=com"))
    with pytest.raises(DuplicateIdentifierError):
        builder.insert_record(ConnectionRecord(identifier="CN=alpha, dc=example,dc=com"))
    with pytest.raises(DuplicateIdentifierError):
        build_tree(BASE, [("cn=a,dc=example,dc=com", None), ("cn=a,dc=example,dc=com", None)])


def test_value_case_variant_is_a_duplicate():
    builder = ConnectionTreeBuilder(BASE)
    builder.insert_record(ConnectionRecord(identifier="cn=alpha,dc=example,dc=com"))
    with pytest.raises(DuplicateIdentifierError):
        builder.insert_record(ConnectionRecord(identifier="cn=ALPHA,dc=example,dc=com"))
    assert list(builder.records) == ["cn=alpha,dc=example,dc=com"]


def test_insert_record_canonicalizes_and_names():
    builder = ConnectionTreeBuilder(BASE)
    original = ConnectionRecord(identifier="cn=alpha , ou=groupA,dc=example,dc=com")
    stored = builder.insert_record(original)
    assert stored.identifier == "cn=alpha,ou=groupa,dc=example,dc=com"
    assert stored.name == "alpha"
    assert stored.parent_identifier == "ou=groupa,dc=example,dc=com"
    assert original.parent_identifier is None


def test_record_without_components_is_a_child_of_the_root():
    builder = ConnectionTreeBuilder(BASE)
    stored = builder.insert_record(ConnectionRecord(identifier="", name="orphan"))
    assert stored.parent_identifier == "ROOT"
    assert "" in builder.synthetic_root().child_record_ids


def test_empty_base_uses_the_synthetic_root():
    tree = build_tree("", [("cn=alpha,dc=com", None)])
    assert tree.root_folder() is tree.synthetic_root()
    assert tree.records["cn=alpha,dc=com"].parent_identifier == "dc=com"


def test_custom_root_identifier():
    tree = build_tree(BASE, RECORDS[:1], root_identifier="TOP")
    assert tree.synthetic_root().identifier == "TOP"
    assert tree.folders["dc=com"].parent_identifier == "TOP"


@pytest.mark.parametrize("root_identifier", ["dc=com", "DC=Example,dc=com", "ou=elsewhere"])
def test_root_identifier_must_not_be_a_dn(root_identifier):
    with pytest.raises(ValueError):
        build_tree(BASE, [], root_identifier=root_identifier)


def test_walk_visits_folders_depth_first():
    tree = build_tree(BASE, RECORDS)
    visited = [(depth, folder.identifier) for depth, folder in tree.walk()]
    assert visited == [
        (0, BASE),
        (1, "ou=groupa,dc=example,dc=com"),
        (1, "ou=groupb,dc=example,dc=com"),
        (2, "ou=deep,ou=groupb,dc=example,dc=com"),
    ]

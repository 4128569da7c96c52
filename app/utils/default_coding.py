"""
Static chart-of-accounts templates for construction projects.

``BASE_GROUPS`` is what ``initialize`` creates for an empty project.
``default_coding_structure()`` returns the full nested
groups -> classes -> sub_classes -> details tree used by ``import-default``.
"""
from typing import List, Dict, Any

BASE_GROUPS = [
    {"code": "1", "name": "Assets", "sort_order": 1},
    {"code": "2", "name": "Liabilities", "sort_order": 2},
    {"code": "3", "name": "Equity", "sort_order": 3},
    {"code": "4", "name": "Income", "sort_order": 4},
    {"code": "5", "name": "Expenses", "sort_order": 5},
]

# (group code, group name, [(class code, class name, nature, [(sub code, sub name, [detail names])])])
_DEFAULT_TREE = [
    ("1", "Current assets", [
        ("1", "Cash", "DEBIT", [
            ("01", "Head office cash", ["Project A cash", "Project B cash"]),
        ]),
        ("2", "Bank", "DEBIT", [
            ("01", "Bank accounts", ["Project A current account", "Project B account"]),
        ]),
        ("3", "Customers / installments", "DEBIT", [
            ("01", "Installments of unit 1 buyer, project A", ["First installment", "Second installment"]),
            ("02", "Installments of unit 2 buyer, project A", ["First installment", "Second installment"]),
        ]),
    ]),
    ("2", "Non-current assets", [
        ("1", "Land", "DEBIT", [
            ("01", "Land contributed by owner", ["Project A land"]),
            ("02", "Land sold to buyers", ["Unit 1 land"]),
        ]),
        ("2", "Buildings under construction", "DEBIT", [
            ("01", "Project A", ["Project A units"]),
            ("02", "Project B", ["Project B units"]),
        ]),
        ("3", "Machinery and tools", "DEBIT", [
            ("01", "Heavy machinery", []),
            ("02", "Workshop tools", []),
        ]),
    ]),
    ("3", "Liabilities", [
        ("1", "Accounts payable", "CREDIT", [
            ("01", "Subcontractors", ["Contractor A"]),
            ("02", "Material suppliers", ["Cement supplier"]),
        ]),
        ("2", "Bank loans", "CREDIT", [
            ("01", "Project A bank loan", []),
        ]),
    ]),
    ("4", "Owners' equity", [
        ("1", "Capital / contributions", "CREDIT", [
            ("01", "Initial capital", []),
            ("02", "Land owner contribution", ["Project A land"]),
            ("03", "Buyer contributions", ["Unit 1 buyer", "Unit 2 buyer"]),
            ("04", "Buyer prepayments, project A", ["Unit 1", "Unit 2"]),
        ]),
        ("2", "Retained earnings / losses", "CREDIT", [
            ("01", "Retained earnings", []),
            ("02", "Accumulated losses", []),
        ]),
        ("3", "Settlement with owner and buyers", "DEBIT_CREDIT", [
            ("01", "Settlement with land owner", []),
            ("02", "Settlement with buyers", []),
        ]),
    ]),
    ("5", "Purchases", [
        ("1", "Material purchases", "DEBIT", [
            ("01", "Cement purchases", []),
            ("02", "Brick purchases", []),
        ]),
    ]),
    ("6", "Sales", [
        ("1", "Land share sales", "CREDIT", [
            ("01", "Land share sales, project A", []),
        ]),
        ("2", "Unit sales", "CREDIT", [
            ("01", "Unit sales, project A", []),
        ]),
    ]),
    ("7", "Revenues", [
        ("1", "Contracting profit", "CREDIT", [
            ("01", "Project A profit", []),
        ]),
    ]),
    ("8", "Expenses", [
        ("1", "Construction costs", "DEBIT", [
            ("01", "Project A construction costs", []),
        ]),
    ]),
    ("9", "Memorandum accounts", [
        ("1", "Memorandum accounts", "DEBIT_CREDIT", [
            ("01", "Memorandum account A", []),
        ]),
    ]),
]


def _node(code: str, name: str, sort_order: int, **extra) -> Dict[str, Any]:
    node = {
        "code": code,
        "name": name,
        "is_default": True,
        "is_protected": True,
        "sort_order": sort_order,
    }
    node.update(extra)
    return node


def default_coding_structure() -> Dict[str, List[Dict[str, Any]]]:
    groups = []
    for g_idx, (g_code, g_name, classes) in enumerate(_DEFAULT_TREE, start=1):
        class_nodes = []
        for c_idx, (c_code, c_name, nature, subs) in enumerate(classes, start=1):
            sub_nodes = []
            for s_idx, (s_code, s_name, details) in enumerate(subs, start=1):
                detail_nodes = [
                    _node(f"{d_idx:02d}", d_name, d_idx)
                    for d_idx, d_name in enumerate(details, start=1)
                ]
                sub_nodes.append(
                    _node(s_code, s_name, s_idx, has_details=bool(detail_nodes), details=detail_nodes)
                )
            class_nodes.append(_node(c_code, c_name, c_idx, nature=nature, sub_classes=sub_nodes))
        groups.append(_node(g_code, g_name, g_idx, classes=class_nodes))
    return {"groups": groups}

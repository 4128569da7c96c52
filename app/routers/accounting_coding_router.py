import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.utils.database import get_db
from app.utils.security import require_admin
from app.utils.activity_logger import log_activity
from app.utils.coding_utils import validate_code, next_code
from app.utils.default_coding import BASE_GROUPS, default_coding_structure
from app.utils.accounting_ops import groups_query, resolve_full_code
from app.models.user_model import User
from app.models.project_model import Project, FiscalYear
from app.models.accounting_coding_model import (
    AccountGroup,
    AccountClass,
    AccountSubClass,
    AccountDetail,
)
from app.schemas.accounting_schemas import (
    GroupCreate,
    ClassCreate,
    SubClassCreate,
    DetailCreate,
    CodingUpdate,
    CodingInit,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/accounting/coding", tags=["Accounting Coding"])


# -------------------------------------------------
# Helpers
# -------------------------------------------------
def _check_project(db: Session, project_id: int, fiscal_year_id: Optional[int] = None):
    if not db.query(Project.project_id).filter(Project.project_id == project_id).first():
        raise HTTPException(404, "Project not found")
    if fiscal_year_id is not None:
        fy = (
            db.query(FiscalYear.fiscal_year_id)
            .filter(FiscalYear.fiscal_year_id == fiscal_year_id, FiscalYear.project_id == project_id)
            .first()
        )
        if not fy:
            raise HTTPException(404, "Fiscal year not found")


def _code_or_400(level: str, code) -> str:
    try:
        return validate_code(level, code)
    except ValueError as e:
        raise HTTPException(400, str(e))


def _node_out(node, level: str) -> dict:
    out = {
        "id": getattr(node, {
            "group": "group_id",
            "class": "class_id",
            "subclass": "sub_class_id",
            "detail": "detail_id",
        }[level]),
        "level": level,
        "code": node.code,
        "full_code": node.full_code,
        "name": node.name,
        "description": node.description,
        "is_default": node.is_default,
        "is_protected": node.is_protected,
        "is_active": node.is_active,
        "sort_order": node.sort_order,
    }
    if level == "class":
        out["nature"] = node.nature
    if level == "subclass":
        out["has_details"] = node.has_details
    return out


def _tree(groups) -> list:
    tree = []
    for g in groups:
        g_out = _node_out(g, "group")
        g_out["classes"] = []
        for c in g.classes:
            c_out = _node_out(c, "class")
            c_out["sub_classes"] = []
            for s in c.sub_classes:
                s_out = _node_out(s, "subclass")
                s_out["details"] = [_node_out(d, "detail") for d in s.details]
                c_out["sub_classes"].append(s_out)
            g_out["classes"].append(c_out)
        tree.append(g_out)
    return tree


def _save(db: Session, node, admin: User, action: str, level: str):
    try:
        db.flush()
        log_activity(db, admin.user_id, action, f"ACCOUNT_{level.upper()}", None, f"{node.full_code} {node.name}")
        db.commit()
        db.refresh(node)
    except IntegrityError:
        db.rollback()
        raise HTTPException(status.HTTP_409_CONFLICT, f"{level} code already exists at this level")
    except Exception:
        db.rollback()
        raise
    return _node_out(node, level)


def _delete(db: Session, node, children, admin: User, level: str):
    if node.is_protected:
        raise HTTPException(400, f"Protected {level} cannot be deleted")
    if children:
        raise HTTPException(400, f"{level} has child accounts. Delete them first.")

    full_code = node.full_code
    db.delete(node)
    log_activity(db, admin.user_id, "DELETE", f"ACCOUNT_{level.upper()}", None, f"{full_code} {node.name}")
    db.commit()
    return {"message": "deleted", "level": level, "code": full_code}


# =================================================
# 🔹 TREE / LOOKUPS
# =================================================
@router.get("/tree")
def get_tree(
        project_id: int = Query(...),
        fiscal_year_id: Optional[int] = Query(None),
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    _check_project(db, project_id, fiscal_year_id)
    groups = (
        groups_query(db, project_id, fiscal_year_id)
        .order_by(AccountGroup.sort_order.asc(), AccountGroup.code.asc())
        .all()
    )
    return {"project_id": project_id, "fiscal_year_id": fiscal_year_id, "groups": _tree(groups)}


@router.get("/resolve")
def resolve_code(
        project_id: int = Query(...),
        code: str = Query(...),
        fiscal_year_id: Optional[int] = Query(None),
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    try:
        found = resolve_full_code(db, project_id, code.strip(), fiscal_year_id)
    except ValueError as e:
        raise HTTPException(400, str(e))
    if not found:
        raise HTTPException(404, "Account code not found")
    return found


@router.get("/next-code")
def suggest_next_code(
        level: str = Query(..., pattern="^(group|class|subclass|detail)$"),
        project_id: Optional[int] = Query(None),
        fiscal_year_id: Optional[int] = Query(None),
        parent_id: Optional[int] = Query(None),
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    """
    group needs project_id (and optional fiscal_year_id); the other levels
    need parent_id (group_id / class_id / sub_class_id).
    """
    if level == "group":
        if project_id is None:
            raise HTTPException(400, "project_id is required for group codes")
        existing = [g.code for g in groups_query(db, project_id, fiscal_year_id).all()]
    else:
        if parent_id is None:
            raise HTTPException(400, "parent_id is required")
        model, parent_col = {
            "class": (AccountClass, AccountClass.group_id),
            "subclass": (AccountSubClass, AccountSubClass.class_id),
            "detail": (AccountDetail, AccountDetail.sub_class_id),
        }[level]
        existing = [row.code for row in db.query(model).filter(parent_col == parent_id).all()]

    suggestion = next_code(level, existing)
    if suggestion is None:
        raise HTTPException(400, f"No free {level} code left")
    return {"level": level, "next_code": suggestion}


# =================================================
# 🔹 INITIALIZE / DEFAULT STRUCTURE
# =================================================
@router.post("/initialize")
def initialize_groups(
        payload: CodingInit,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    _check_project(db, payload.project_id, payload.fiscal_year_id)

    if groups_query(db, payload.project_id, payload.fiscal_year_id).first():
        return {"message": "Accounting groups already exist for this project", "groups_created": 0}

    for g in BASE_GROUPS:
        db.add(
            AccountGroup(
                project_id=payload.project_id,
                fiscal_year_id=payload.fiscal_year_id,
                code=g["code"],
                name=g["name"],
                is_default=True,
                is_protected=True,
                is_active=True,
                sort_order=g["sort_order"],
            )
        )

    log_activity(db, admin.user_id, "INITIALIZE", "ACCOUNT_GROUP", payload.project_id, "Base groups created")
    db.commit()
    return {"message": "Accounting groups initialized", "groups_created": len(BASE_GROUPS)}


@router.post("/import-default", status_code=status.HTTP_201_CREATED)
def import_default_structure(
        payload: CodingInit,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    _check_project(db, payload.project_id, payload.fiscal_year_id)

    existing = (
        groups_query(db, payload.project_id, payload.fiscal_year_id)
        .filter(AccountGroup.is_default.is_(True))
        .first()
    )
    if existing:
        raise HTTPException(400, "Default coding structure already exists for this project")

    counts = {"groups": 0, "classes": 0, "sub_classes": 0, "details": 0}
    try:
        for g in default_coding_structure()["groups"]:
            group = AccountGroup(
                project_id=payload.project_id,
                fiscal_year_id=payload.fiscal_year_id,
                code=g["code"],
                name=g["name"],
                is_default=g["is_default"],
                is_protected=g["is_protected"],
                sort_order=g["sort_order"],
            )
            counts["groups"] += 1
            for c in g["classes"]:
                cls = AccountClass(
                    code=c["code"],
                    name=c["name"],
                    nature=c["nature"],
                    is_default=c["is_default"],
                    is_protected=c["is_protected"],
                    sort_order=c["sort_order"],
                )
                group.classes.append(cls)
                counts["classes"] += 1
                for s in c["sub_classes"]:
                    sub = AccountSubClass(
                        code=s["code"],
                        name=s["name"],
                        has_details=s["has_details"],
                        is_default=s["is_default"],
                        is_protected=s["is_protected"],
                        sort_order=s["sort_order"],
                    )
                    cls.sub_classes.append(sub)
                    counts["sub_classes"] += 1
                    for d in s["details"]:
                        sub.details.append(
                            AccountDetail(
                                code=d["code"],
                                name=d["name"],
                                is_default=d["is_default"],
                                is_protected=d["is_protected"],
                                sort_order=d["sort_order"],
                            )
                        )
                        counts["details"] += 1
            db.add(group)

        db.flush()
        log_activity(db, admin.user_id, "IMPORT_DEFAULT", "ACCOUNT_GROUP", payload.project_id, str(counts))
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status.HTTP_409_CONFLICT,
            "Existing group codes clash with the default structure. Remove them first.",
        )
    except Exception:
        db.rollback()
        raise

    logger.info("Imported default coding for project_id=%s: %s", payload.project_id, counts)
    return {"message": "Default coding structure imported", **counts}


@router.delete("/import-default")
def remove_default_structure(
        project_id: int = Query(...),
        fiscal_year_id: Optional[int] = Query(None),
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    _check_project(db, project_id, fiscal_year_id)

    removed = 0
    try:
        for g in groups_query(db, project_id, fiscal_year_id).all():
            for c in list(g.classes):
                for s in list(c.sub_classes):
                    for d in list(s.details):
                        if d.is_default:
                            s.details.remove(d)
                            removed += 1
                    if s.is_default and not s.details:
                        c.sub_classes.remove(s)
                        removed += 1
                if c.is_default and not c.sub_classes:
                    g.classes.remove(c)
                    removed += 1
            if g.is_default and not g.classes:
                db.delete(g)
                removed += 1

        log_activity(db, admin.user_id, "REMOVE_DEFAULT", "ACCOUNT_GROUP", project_id, f"{removed} row(s)")
        db.commit()
    except Exception:
        db.rollback()
        raise

    return {"message": "Default coding removed", "removed": removed}


# =================================================
# 🔹 GROUPS
# =================================================
@router.post("/groups", status_code=status.HTTP_201_CREATED)
def create_group(payload: GroupCreate, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    _check_project(db, payload.project_id, payload.fiscal_year_id)
    code = _code_or_400("group", payload.code)

    if groups_query(db, payload.project_id, payload.fiscal_year_id).filter(AccountGroup.code == code).first():
        raise HTTPException(status.HTTP_409_CONFLICT, "group code already exists at this level")

    node = AccountGroup(
        project_id=payload.project_id,
        fiscal_year_id=payload.fiscal_year_id,
        code=code,
        name=payload.name.strip(),
        description=payload.description,
        sort_order=payload.sort_order,
    )
    db.add(node)
    return _save(db, node, admin, "CREATE", "group")


@router.put("/groups/{group_id}")
def update_group(group_id: int, payload: CodingUpdate, db: Session = Depends(get_db),
                 admin: User = Depends(require_admin)):
    node = db.query(AccountGroup).filter(AccountGroup.group_id == group_id).first()
    if not node:
        raise HTTPException(404, "Group not found")

    data = payload.model_dump(exclude_unset=True)
    if data.get("code") is not None:
        code = _code_or_400("group", data["code"])
        clash = (
            groups_query(db, node.project_id, node.fiscal_year_id)
            .filter(AccountGroup.code == code, AccountGroup.group_id != group_id)
            .first()
        )
        if clash:
            raise HTTPException(status.HTTP_409_CONFLICT, "group code already exists at this level")
        node.code = code

    for field in ("name", "description", "is_active", "sort_order"):
        if data.get(field) is not None:
            setattr(node, field, data[field])
    return _save(db, node, admin, "UPDATE", "group")


@router.delete("/groups/{group_id}")
def delete_group(group_id: int, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    node = db.query(AccountGroup).filter(AccountGroup.group_id == group_id).first()
    if not node:
        raise HTTPException(404, "Group not found")
    return _delete(db, node, node.classes, admin, "group")


# =================================================
# 🔹 CLASSES
# =================================================
@router.post("/classes", status_code=status.HTTP_201_CREATED)
def create_class(payload: ClassCreate, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    group = db.query(AccountGroup).filter(AccountGroup.group_id == payload.group_id).first()
    if not group:
        raise HTTPException(404, "Group not found")

    code = _code_or_400("class", payload.code)
    if any(c.code == code for c in group.classes):
        raise HTTPException(status.HTTP_409_CONFLICT, "class code already exists at this level")

    node = AccountClass(
        code=code,
        name=payload.name.strip(),
        description=payload.description,
        nature=payload.nature,
        sort_order=payload.sort_order,
    )
    group.classes.append(node)
    return _save(db, node, admin, "CREATE", "class")


@router.put("/classes/{class_id}")
def update_class(class_id: int, payload: CodingUpdate, db: Session = Depends(get_db),
                 admin: User = Depends(require_admin)):
    node = db.query(AccountClass).filter(AccountClass.class_id == class_id).first()
    if not node:
        raise HTTPException(404, "Class not found")

    data = payload.model_dump(exclude_unset=True)
    if data.get("code") is not None:
        code = _code_or_400("class", data["code"])
        if any(c.code == code and c.class_id != class_id for c in node.group.classes):
            raise HTTPException(status.HTTP_409_CONFLICT, "class code already exists at this level")
        node.code = code

    for field in ("name", "description", "nature", "is_active", "sort_order"):
        if data.get(field) is not None:
            setattr(node, field, data[field])
    return _save(db, node, admin, "UPDATE", "class")


@router.delete("/classes/{class_id}")
def delete_class(class_id: int, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    node = db.query(AccountClass).filter(AccountClass.class_id == class_id).first()
    if not node:
        raise HTTPException(404, "Class not found")
    return _delete(db, node, node.sub_classes, admin, "class")


# =================================================
# 🔹 SUBCLASSES
# =================================================
@router.post("/subclasses", status_code=status.HTTP_201_CREATED)
def create_subclass(payload: SubClassCreate, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    parent = db.query(AccountClass).filter(AccountClass.class_id == payload.class_id).first()
    if not parent:
        raise HTTPException(404, "Class not found")

    code = _code_or_400("subclass", payload.code)
    if any(s.code == code for s in parent.sub_classes):
        raise HTTPException(status.HTTP_409_CONFLICT, "subclass code already exists at this level")

    node = AccountSubClass(
        code=code,
        name=payload.name.strip(),
        description=payload.description,
        has_details=payload.has_details,
        sort_order=payload.sort_order,
    )
    parent.sub_classes.append(node)
    return _save(db, node, admin, "CREATE", "subclass")


@router.put("/subclasses/{sub_class_id}")
def update_subclass(sub_class_id: int, payload: CodingUpdate, db: Session = Depends(get_db),
                    admin: User = Depends(require_admin)):
    node = db.query(AccountSubClass).filter(AccountSubClass.sub_class_id == sub_class_id).first()
    if not node:
        raise HTTPException(404, "Subclass not found")

    data = payload.model_dump(exclude_unset=True)
    if data.get("code") is not None:
        code = _code_or_400("subclass", data["code"])
        if any(s.code == code and s.sub_class_id != sub_class_id for s in node.account_class.sub_classes):
            raise HTTPException(status.HTTP_409_CONFLICT, "subclass code already exists at this level")
        node.code = code

    for field in ("name", "description", "has_details", "is_active", "sort_order"):
        if data.get(field) is not None:
            setattr(node, field, data[field])
    return _save(db, node, admin, "UPDATE", "subclass")


@router.delete("/subclasses/{sub_class_id}")
def delete_subclass(sub_class_id: int, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    node = db.query(AccountSubClass).filter(AccountSubClass.sub_class_id == sub_class_id).first()
    if not node:
        raise HTTPException(404, "Subclass not found")
    return _delete(db, node, node.details, admin, "subclass")


# =================================================
# 🔹 DETAILS
# =================================================
@router.post("/details", status_code=status.HTTP_201_CREATED)
def create_detail(payload: DetailCreate, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    parent = db.query(AccountSubClass).filter(AccountSubClass.sub_class_id == payload.sub_class_id).first()
    if not parent:
        raise HTTPException(404, "Subclass not found")

    code = _code_or_400("detail", payload.code)
    if any(d.code == code for d in parent.details):
        raise HTTPException(status.HTTP_409_CONFLICT, "detail code already exists at this level")

    node = AccountDetail(
        code=code,
        name=payload.name.strip(),
        description=payload.description,
        sort_order=payload.sort_order,
    )
    parent.details.append(node)
    parent.has_details = True
    return _save(db, node, admin, "CREATE", "detail")


@router.put("/details/{detail_id}")
def update_detail(detail_id: int, payload: CodingUpdate, db: Session = Depends(get_db),
                  admin: User = Depends(require_admin)):
    node = db.query(AccountDetail).filter(AccountDetail.detail_id == detail_id).first()
    if not node:
        raise HTTPException(404, "Detail not found")

    data = payload.model_dump(exclude_unset=True)
    if data.get("code") is not None:
        code = _code_or_400("detail", data["code"])
        if any(d.code == code and d.detail_id != detail_id for d in node.sub_class.details):
            raise HTTPException(status.HTTP_409_CONFLICT, "detail code already exists at this level")
        node.code = code

    for field in ("name", "description", "is_active", "sort_order"):
        if data.get(field) is not None:
            setattr(node, field, data[field])
    return _save(db, node, admin, "UPDATE", "detail")


@router.delete("/details/{detail_id}")
def delete_detail(detail_id: int, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    node = db.query(AccountDetail).filter(AccountDetail.detail_id == detail_id).first()
    if not node:
        raise HTTPException(404, "Detail not found")
    return _delete(db, node, [], admin, "detail")

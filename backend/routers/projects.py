from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from .. import models
from ..database import get_db
from ..schemas import ProjectCreate, MilestoneCreate, DeviceShipmentUpdate

router = APIRouter(prefix="/projects", tags=["projects"])


def _project_to_dict(project: models.Project) -> dict:
    return {
        "id": project.id,
        "name": project.name,
        "location": project.location,
        "building_type": project.building_type,
        "rooms_count": project.rooms_count,
        "status": project.status.value if project.status else None,
        "created_at": project.created_at.isoformat() if project.created_at else None,
        "milestones": [
            {
                "id": m.id,
                "index": m.index,
                "title": m.title,
                "amount": m.amount,
                "status": m.status,
                "items": m.items_json,
            }
            for m in project.milestones
        ],
    }


def _shipment_to_dict(shipment: models.ProjectDeviceShipment) -> dict:
    return {
        "id": shipment.id,
        "project_id": shipment.project_id,
        "milestone_id": shipment.milestone_id,
        "items": shipment.items_json or [],
        "status": shipment.status.value if shipment.status else None,
        "location_note": shipment.location_note,
        "estimated_from": shipment.estimated_from.isoformat() if shipment.estimated_from else None,
        "estimated_to": shipment.estimated_to.isoformat() if shipment.estimated_to else None,
        "updated_at": shipment.updated_at.isoformat() if shipment.updated_at else None,
    }


def _get_project(project_id: str, db: Session) -> models.Project:
    project = db.query(models.Project).filter(models.Project.id == project_id).first()
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


@router.post("/")
def create_project(payload: ProjectCreate, db: Session = Depends(get_db)):
    project = models.Project(**payload.model_dump())
    db.add(project)
    db.commit()
    db.refresh(project)
    return _project_to_dict(project)


@router.get("/")
def list_projects(skip: int = 0, limit: int = 50, db: Session = Depends(get_db)):
    projects = db.query(models.Project).order_by(
        models.Project.created_at.desc()
    ).offset(skip).limit(limit).all()
    return [_project_to_dict(p) for p in projects]


@router.get("/{project_id}")
def get_project(project_id: str, db: Session = Depends(get_db)):
    return _project_to_dict(_get_project(project_id, db))


@router.post("/{project_id}/milestones")
def create_milestone(project_id: str, payload: MilestoneCreate, db: Session = Depends(get_db)):
    project = _get_project(project_id, db)
    index = payload.index
    if index is None:
        index = max((m.index for m in project.milestones), default=-1) + 1
    milestone = models.Milestone(
        project_id=project.id,
        index=index,
        title=payload.title,
        amount=payload.amount,
        items_json=payload.items,
    )
    db.add(milestone)
    db.commit()
    db.refresh(project)
    return _project_to_dict(project)


@router.get("/{project_id}/device-shipment")
def get_device_shipment(project_id: str, db: Session = Depends(get_db)):
    project = _get_project(project_id, db)
    if not project.device_shipment:
        raise HTTPException(status_code=404, detail="Device shipment not found: run the backfill first")
    return _shipment_to_dict(project.device_shipment)


@router.patch("/{project_id}/device-shipment")
def update_device_shipment(
    project_id: str,
    update: DeviceShipmentUpdate,
    db: Session = Depends(get_db),
):
    """Tracking fields only: items are never edited here."""
    project = _get_project(project_id, db)
    shipment = project.device_shipment
    if not shipment:
        raise HTTPException(status_code=404, detail="Device shipment not found: run the backfill first")
    for field, value in update.model_dump(exclude_unset=True).items():
        setattr(shipment, field, value)
    db.commit()
    db.refresh(shipment)
    return _shipment_to_dict(shipment)

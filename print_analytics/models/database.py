"""
SQLAlchemy database models for the local SQLite store

API payloads use camelCase keys; ``to_dict`` / ``from_dict`` translate
between those payloads and the snake_case columns.
"""

from datetime import date, datetime
from typing import Any, Dict
from sqlalchemy import (
    Column, String, Integer, Boolean, DateTime, Date, Text, Float, JSON, Index
)
from sqlalchemy.orm import declarative_base

from ..utils.timeutils import parse_iso, to_iso, utc_now

Base = declarative_base()


def _parse_date(value):
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _date_iso(value):
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return value.isoformat()


def _timestamp_iso(value):
    if value is None or isinstance(value, str):
        return value
    return to_iso(value)


class Job(Base):
    """
    One recorded 3D-print production run
    """
    __tablename__ = 'jobs'

    # Primary key (time-based id)
    id = Column(String(64), primary_key=True)

    # Descriptive fields
    date = Column(Date, nullable=False)
    project_name = Column(String(100), nullable=False)
    part_type = Column(String(50), nullable=False)
    part_size = Column(String(50), nullable=False)
    part_name = Column(String(100), nullable=False)
    application = Column(String(200), nullable=False)
    sharepoint_link = Column(String(500))
    material_used = Column(String(50), nullable=False)
    machine_name = Column(String(50), nullable=False)

    # Costs
    printing_time_mins = Column(Float, nullable=False, default=0)
    printing_time_hrs = Column(Float, nullable=False, default=0)
    print_price = Column(Float, nullable=False, default=0)
    electricity_cost = Column(Float, nullable=False, default=0)
    print_cost = Column(Float, nullable=False, default=0)
    oem_cost = Column(Float, nullable=False, default=0)
    savings_per_product = Column(Float, nullable=False, default=0)

    # Location counters
    qty_bng = Column(Integer, nullable=False, default=0)
    qty_sampling = Column(Integer, nullable=False, default=0)
    qty_rcc = Column(Integer, nullable=False, default=0)
    qty_rd = Column(Integer, nullable=False, default=0)
    qty_kaa = Column(Integer, nullable=False, default=0)
    qty_bom = Column(Integer, nullable=False, default=0)
    qty_other = Column(Integer, nullable=False, default=0)
    total_quantity = Column(Integer, nullable=False, default=0)
    total_savings = Column(Float, nullable=False, default=0)

    # Classification
    status = Column(String(20), nullable=False)
    category = Column(String(20), nullable=False)

    # Base64 encoded image
    image = Column(Text)

    # Timestamps
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, nullable=False)

    __table_args__ = (
        Index('idx_jobs_created_at', 'created_at'),
        Index('idx_jobs_status', 'status'),
    )

    # API field -> column, for sorting, filtering and aggregation
    FIELD_COLUMNS = {
        'id': 'id',
        'date': 'date',
        'projectName': 'project_name',
        'partName': 'part_name',
        'materialUsed': 'material_used',
        'machineName': 'machine_name',
        'printingTimeMins': 'printing_time_mins',
        'printingTimeHrs': 'printing_time_hrs',
        'printCost': 'print_cost',
        'oemCost': 'oem_cost',
        'savingsPerProduct': 'savings_per_product',
        'totalQuantity': 'total_quantity',
        'totalSavings': 'total_savings',
        'status': 'status',
        'category': 'category',
        'createdAt': 'created_at',
        'updatedAt': 'updated_at',
    }

    LOCATIONS = ('bng', 'sampling', 'rcc', 'rd', 'kaa', 'bom', 'other')

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary for API responses"""
        return {
            'id': self.id,
            'date': _date_iso(self.date),
            'projectName': self.project_name,
            'partType': self.part_type,
            'partSize': self.part_size,
            'partName': self.part_name,
            'application': self.application,
            'sharepointLink': self.sharepoint_link,
            'materialUsed': self.material_used,
            'machineName': self.machine_name,
            'printingTimeMins': self.printing_time_mins,
            'printingTimeHrs': self.printing_time_hrs,
            'printPrice': self.print_price,
            'electricityCost': self.electricity_cost,
            'printCost': self.print_cost,
            'oemCost': self.oem_cost,
            'savingsPerProduct': self.savings_per_product,
            'quantities': {
                name: getattr(self, f'qty_{name}') or 0 for name in self.LOCATIONS
            },
            'totalQuantity': self.total_quantity,
            'totalSavings': self.total_savings,
            'status': self.status,
            'category': self.category,
            'image': self.image,
            'createdAt': _timestamp_iso(self.created_at),
            'updatedAt': _timestamp_iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        """Create model instance from API dictionary data"""
        quantities = data.get('quantities') or {}
        return cls(
            id=data.get('id'),
            date=_parse_date(data.get('date')),
            project_name=data.get('projectName'),
            part_type=data.get('partType'),
            part_size=data.get('partSize'),
            part_name=data.get('partName'),
            application=data.get('application'),
            sharepoint_link=data.get('sharepointLink'),
            material_used=data.get('materialUsed'),
            machine_name=data.get('machineName'),
            printing_time_mins=data.get('printingTimeMins', 0),
            printing_time_hrs=data.get('printingTimeHrs', 0),
            print_price=data.get('printPrice', 0),
            electricity_cost=data.get('electricityCost', 0),
            print_cost=data.get('printCost', 0),
            oem_cost=data.get('oemCost', 0),
            savings_per_product=data.get('savingsPerProduct', 0),
            total_quantity=data.get('totalQuantity', 0),
            total_savings=data.get('totalSavings', 0),
            status=data.get('status'),
            category=data.get('category'),
            image=data.get('image'),
            created_at=parse_iso(data.get('createdAt')),
            updated_at=parse_iso(data.get('updatedAt')),
            **{f'qty_{name}': int(quantities.get(name) or 0) for name in cls.LOCATIONS},
        )


class Feedback(Base):
    """
    User-submitted rating and comment
    """
    __tablename__ = 'feedback'

    id = Column(String(64), primary_key=True)

    name = Column(String(100), nullable=False)
    email = Column(String(100), nullable=False)
    part_name = Column(String(100))
    location = Column(String(100), nullable=False)
    category = Column(String(20), nullable=False)
    subject = Column(String(200), nullable=False)
    message = Column(String(1000), nullable=False)
    rating = Column(Integer, nullable=False)
    image = Column(Text)
    status = Column(String(20), nullable=False, default='new')

    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, nullable=False)

    __table_args__ = (
        Index('idx_feedback_created_at', 'created_at'),
        Index('idx_feedback_status', 'status'),
    )

    FIELD_COLUMNS = {
        'id': 'id',
        'name': 'name',
        'category': 'category',
        'rating': 'rating',
        'status': 'status',
        'createdAt': 'created_at',
        'updatedAt': 'updated_at',
    }

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary for API responses"""
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'partName': self.part_name,
            'location': self.location,
            'category': self.category,
            'subject': self.subject,
            'message': self.message,
            'rating': self.rating,
            'image': self.image,
            'status': self.status,
            'createdAt': _timestamp_iso(self.created_at),
            'updatedAt': _timestamp_iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        """Create model instance from API dictionary data"""
        return cls(
            id=data.get('id'),
            name=data.get('name'),
            email=data.get('email'),
            part_name=data.get('partName'),
            location=data.get('location'),
            category=data.get('category'),
            subject=data.get('subject'),
            message=data.get('message'),
            rating=data.get('rating'),
            image=data.get('image'),
            status=data.get('status', 'new'),
            created_at=parse_iso(data.get('createdAt')),
            updated_at=parse_iso(data.get('updatedAt')),
        )


class Project(Base):
    """
    A needed (future) print project
    """
    __tablename__ = 'projects'

    # Zero-padded sequential id
    id = Column(String(64), primary_key=True)

    title = Column(String(200), nullable=False)
    description = Column(String(1000), nullable=False)
    priority = Column(String(20), nullable=False)
    location = Column(String(100), nullable=False)
    due_date = Column(Date, nullable=False)
    assigned_to = Column(String(100))
    tags = Column(JSON, default=list)
    image = Column(Text)
    status = Column(String(20), nullable=False, default='pending')

    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, nullable=False)

    __table_args__ = (
        Index('idx_projects_created_at', 'created_at'),
        Index('idx_projects_status_priority', 'status', 'priority'),
    )

    FIELD_COLUMNS = {
        'id': 'id',
        'title': 'title',
        'priority': 'priority',
        'location': 'location',
        'dueDate': 'due_date',
        'status': 'status',
        'createdAt': 'created_at',
        'updatedAt': 'updated_at',
    }

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary for API responses"""
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'priority': self.priority,
            'location': self.location,
            'dueDate': _date_iso(self.due_date),
            'assignedTo': self.assigned_to,
            'tags': list(self.tags or []),
            'image': self.image,
            'status': self.status,
            'createdAt': _timestamp_iso(self.created_at),
            'updatedAt': _timestamp_iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        """Create model instance from API dictionary data"""
        return cls(
            id=data.get('id'),
            title=data.get('title'),
            description=data.get('description'),
            priority=data.get('priority'),
            location=data.get('location'),
            due_date=_parse_date(data.get('dueDate')),
            assigned_to=data.get('assignedTo'),
            tags=list(data.get('tags') or []),
            image=data.get('image'),
            status=data.get('status', 'pending'),
            created_at=parse_iso(data.get('createdAt')),
            updated_at=parse_iso(data.get('updatedAt')),
        )


class Setting(Base):
    """
    One key of the settings bag
    """
    __tablename__ = 'settings'

    key = Column(String(100), primary_key=True)
    value = Column(JSON)
    description = Column(Text)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)


class AuthLog(Base):
    """
    Append-only record of admin login attempts
    """
    __tablename__ = 'auth_logs'

    id = Column(Integer, primary_key=True, autoincrement=True)
    ip = Column(String(64), nullable=False)
    user_agent = Column(Text)
    action = Column(String(50), nullable=False)
    success = Column(Boolean, nullable=False)
    timestamp = Column(DateTime, default=utc_now, nullable=False)

    __table_args__ = (
        Index('idx_auth_logs_timestamp', 'timestamp'),
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'ip': self.ip,
            'userAgent': self.user_agent,
            'action': self.action,
            'success': self.success,
            'timestamp': _timestamp_iso(self.timestamp),
        }


# Collection name -> model
COLLECTION_MODELS = {
    'jobs': Job,
    'feedback': Feedback,
    'projects': Project,
}

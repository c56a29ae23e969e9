from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from tool_room.db.base import Base


TOOL_STATUSES = ("Available", "In Use", "Damaged", "Lost", "Cal. Due")
OVERRIDE_STATUSES = {"Damaged", "Lost"}
ASSIGNMENT_ACTIVE = "active"
ASSIGNMENT_COMPLETED = "completed"
TOOL_CONDITIONS = ("good", "damaged", "lost")


class Tool(Base):
    __tablename__ = "Tools"

    ToolID = Column(Integer, primary_key=True)
    ToolName = Column(String(255), nullable=False)
    Category = Column(String(255), nullable=False)
    Status = Column(String(20), nullable=False, default="Available")
    IsCalibrable = Column(Boolean, default=False)
    CalibrationDue = Column(Date)
    CertificateNumber = Column(String(100))
    Quantity = Column(Integer, default=1)
    ImagePath = Column(String(500))
    CustomAttributes = Column(Text)
    CreatedDate = Column(DateTime, server_default=func.now())
    UpdatedDate = Column(DateTime, server_default=func.now())

    AssignmentTools = relationship("AssignmentTool", back_populates="Tool", passive_deletes="all")


class Worker(Base):
    __tablename__ = "Workers"

    WorkerID = Column(Integer, primary_key=True)
    WorkerName = Column(String(255), nullable=False)
    EmployeeID = Column(String(50), nullable=False, unique=True)
    CreatedDate = Column(DateTime, server_default=func.now())
    UpdatedDate = Column(DateTime, server_default=func.now())

    # Completed history keeps its WorkerID after the worker row is gone.
    Assignments = relationship("Assignment", back_populates="Worker", passive_deletes="all")


class Project(Base):
    __tablename__ = "Projects"

    ProjectID = Column(Integer, primary_key=True)
    ProjectName = Column(String(255), nullable=False)
    CreatedDate = Column(DateTime, server_default=func.now())
    UpdatedDate = Column(DateTime, server_default=func.now())

    Assignments = relationship("Assignment", back_populates="Project", passive_deletes="all")


class Assignment(Base):
    __tablename__ = "Assignments"

    AssignmentID = Column(Integer, primary_key=True)
    CheckoutDate = Column(DateTime, nullable=False)
    CheckinDate = Column(DateTime)
    WorkerID = Column(Integer, ForeignKey("Workers.WorkerID"), nullable=False)
    ProjectID = Column(Integer, ForeignKey("Projects.ProjectID"), nullable=False)
    Status = Column(String(20), nullable=False, default=ASSIGNMENT_ACTIVE)
    CheckinNotes = Column(Text)
    ToolConditions = Column(Text)
    CreatedDate = Column(DateTime, server_default=func.now())
    UpdatedDate = Column(DateTime, server_default=func.now())

    Worker = relationship("Worker", back_populates="Assignments")
    Project = relationship("Project", back_populates="Assignments")
    AssignmentTools = relationship(
        "AssignmentTool",
        back_populates="Assignment",
        cascade="all, delete-orphan",
        order_by="AssignmentTool.AssignmentToolID",
    )


class AssignmentTool(Base):
    __tablename__ = "AssignmentTools"

    AssignmentToolID = Column(Integer, primary_key=True)
    AssignmentID = Column(Integer, ForeignKey("Assignments.AssignmentID", ondelete="CASCADE"), nullable=False)
    ToolID = Column(Integer, ForeignKey("Tools.ToolID"), nullable=False)
    Quantity = Column(Integer, default=1)

    Assignment = relationship("Assignment", back_populates="AssignmentTools")
    Tool = relationship("Tool", back_populates="AssignmentTools")

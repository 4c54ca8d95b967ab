from .catalog import Product
from .auth import User, UserPermissionOverride, SessionToken
from .agents import Agent, AgentVisit, AgentHeartbeat, JourneyPlan, JourneyPlanStop
from .loads import StockLoad, StockLoadItem
from .sales import Invoice, InvoiceItem
from .reconciliations import Reconciliation, ReconciliationItem
from .documents import AuditEvent, DocumentSequence

__all__ = [
    'Product',
    'User', 'UserPermissionOverride', 'SessionToken',
    'Agent', 'AgentVisit', 'AgentHeartbeat', 'JourneyPlan', 'JourneyPlanStop',
    'StockLoad', 'StockLoadItem',
    'Invoice', 'InvoiceItem',
    'Reconciliation', 'ReconciliationItem',
    'AuditEvent', 'DocumentSequence',
]

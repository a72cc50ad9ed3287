from .stores import Store, STATUS_ACTIVE, STATUS_INACTIVE, STATUS_DELETED
from .customers import Customer, VIP_TIERS
from .staff import Employee, TimeEntry, EMPLOYEE_ROLES
from .inventory import InventoryItem
from .orders import Order, OrderItem, PaymentHistory, ORDER_STATUSES, PAYMENT_TYPE_PAYMENT, PAYMENT_TYPE_REFUND
from .measurements import Measurement, MeasurementVersion, MEASUREMENT_FIELDS, VERSIONED_FIELDS
from .settings import OrderStatusSetting, VipStatusSetting, AppSetting, MeasurementTemplate
from .catalog import Category, Service, SERVICE_UNITS
from .scheduling import Task, FittingAppointment, TASK_STATUSES

__all__ = [
    'Store', 'STATUS_ACTIVE', 'STATUS_INACTIVE', 'STATUS_DELETED',
    'Customer', 'VIP_TIERS',
    'Employee', 'TimeEntry', 'EMPLOYEE_ROLES',
    'InventoryItem',
    'Order', 'OrderItem', 'PaymentHistory',
    'ORDER_STATUSES', 'PAYMENT_TYPE_PAYMENT', 'PAYMENT_TYPE_REFUND',
    'Measurement', 'MeasurementVersion', 'MEASUREMENT_FIELDS', 'VERSIONED_FIELDS',
    'OrderStatusSetting', 'VipStatusSetting', 'AppSetting', 'MeasurementTemplate',
    'Category', 'Service', 'SERVICE_UNITS',
    'Task', 'FittingAppointment', 'TASK_STATUSES',
]

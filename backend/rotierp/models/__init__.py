from .auth import User
from .catalog import Product, RawMaterial, Customer, InventoryItem
from .franchises import Franchise
from .counters import Counter, CounterOrder, CounterOrderItem, CounterInventory
from .sales import Order, OrderItem, POSTransaction, POSTransactionItem
from .venues import Venue, VenueOrder, VenueOrderItem
from .hr import Employee, Attendance, Payroll, TrainingProgram, TrainingEnrollment
from .finance import Account, Expense, TaxRecord
from .settings import Setting, Permission, RolePermission, Backup
from .documents import DocumentSequence

__all__ = [
    'User',
    'Product', 'RawMaterial', 'Customer', 'InventoryItem',
    'Franchise',
    'Counter', 'CounterOrder', 'CounterOrderItem', 'CounterInventory',
    'Order', 'OrderItem', 'POSTransaction', 'POSTransactionItem',
    'Venue', 'VenueOrder', 'VenueOrderItem',
    'Employee', 'Attendance', 'Payroll', 'TrainingProgram', 'TrainingEnrollment',
    'Account', 'Expense', 'TaxRecord',
    'Setting', 'Permission', 'RolePermission', 'Backup',
    'DocumentSequence',
]

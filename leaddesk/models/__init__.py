# Models package - database tables
from leaddesk.models.user import User, Roles
from leaddesk.models.lead import Lead, Company, LeadStatus
from leaddesk.models.email import EmailMessage, Direction
from leaddesk.models.notification import Notification
from leaddesk.models.inventory import InventoryItem

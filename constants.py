"""
Constants and static data for the MowerManager fleet tracker.
Centralizes the enumerations shared by the managers and the API layer.
"""

# Mowers
MOWER_CONDITIONS = ['excellent', 'good', 'fair', 'poor']
MOWER_STATUSES = ['active', 'maintenance', 'retired']

# Service history
SERVICE_TYPES = ['maintenance', 'repair', 'inspection', 'warranty']

# Tasks
TASK_PRIORITIES = ['low', 'medium', 'high', 'urgent']
TASK_STATUSES = ['pending', 'in_progress', 'completed', 'cancelled']
TASK_CATEGORIES = ['maintenance', 'repair', 'parts', 'inspection', 'other']

# Engines / components
ENGINE_CONDITIONS = MOWER_CONDITIONS
ENGINE_STATUSES = ['active', 'maintenance', 'retired']

# Attachments
ATTACHMENT_OWNER_TYPES = ['mower', 'engine', 'part']
ATTACHMENT_EXTENSIONS = {
    'pdf': ['pdf'],
    'image': ['jpg', 'jpeg', 'png', 'gif', 'webp'],
    'document': ['txt', 'doc', 'docx', 'xls', 'xlsx', 'csv'],
}

# Notifications
NOTIFICATION_TYPES = ['success', 'info', 'warning', 'error']
NOTIFICATION_PRIORITIES = ['high', 'medium', 'low']

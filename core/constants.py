# core/constants.py
USER_ROLE_CHOICES = (
    ('POSTER', 'Poster'),    # Creates tasks and pays for completed work
    ('DOER', 'Doer'),        # Bids on and performs tasks
    ('ADMIN', 'Admin'),      # Arbitrates disputes
)

ASSIGNMENT_STATUS_CHOICES = (
    ('OPEN', 'Open'),                  # Accepting bids
    ('ASSIGNED', 'Assigned'),          # A bid was accepted, escrow funded
    ('IN_PROGRESS', 'In Progress'),    # Doer has started working
    ('UNDER_REVIEW', 'Under Review'),  # Work submitted, waiting for the poster
    ('COMPLETED', 'Completed'),        # Work approved or dispute released
    ('IN_DISPUTE', 'In Dispute'),      # Frozen pending admin resolution
    ('CANCELLED', 'Cancelled'),        # Dispute resolved with a refund
)

BID_STATUS_CHOICES = (
    ('pending', 'Pending'),      # Doer bid, awaiting poster response
    ('accepted', 'Accepted'),    # Poster accepted this bid
    ('rejected', 'Rejected'),    # Poster rejected it or accepted another bid
)

SUBMISSION_STATUS_CHOICES = (
    ('pending', 'Pending'),
    ('approved', 'Approved'),
    ('rejected', 'Rejected'),
)

PAYMENT_STATUS_CHOICES = (
    ('PENDING', 'Pending'),        # Held in escrow
    ('COMPLETED', 'Completed'),    # Work approved, still held
    ('DISPUTED', 'Disputed'),
    ('RELEASED', 'Released'),      # Paid out to the doer
    ('REFUNDED', 'Refunded'),      # Returned to the poster
)

DISPUTE_STATUS_CHOICES = (
    ('OPEN', 'Open'),
    ('RESOLVED_RELEASE', 'Resolved - Payment Released'),
    ('RESOLVED_REFUND', 'Resolved - Payment Refunded'),
    ('CANCELLED', 'Cancelled'),
)

MESSAGE_KIND_CHOICES = (
    ('USER', 'User'),
    ('SYSTEM', 'System'),
)

SUPPORT_CHAT_STATUS_CHOICES = (
    ('open', 'Open'),
    ('closed', 'Closed'),
)

NOTIFICATION_TYPE_CHOICES = (
    ('new_bid', 'New Bid'),
    ('bid_accepted', 'Bid Accepted'),
    ('bid_rejected', 'Bid Rejected'),
    ('status_update', 'Status Update'),
    ('submission_review_required', 'Submission Review Required'),
    ('submission_status', 'Submission Status'),
    ('payment', 'Payment'),
    ('dispute', 'Dispute'),
    ('review', 'Review'),
)

# Transitions a doer may request through updateTaskStatus
TASK_STATUS_TRANSITIONS = {
    'ASSIGNED': ('IN_PROGRESS',),
    'IN_PROGRESS': ('UNDER_REVIEW',),
    'UNDER_REVIEW': ('COMPLETED', 'IN_PROGRESS'),
}

# Work has been handed to a doer and is not yet settled
WORKING_ASSIGNMENT_STATUSES = ('ASSIGNED', 'IN_PROGRESS', 'UNDER_REVIEW')

# Statuses from which a dispute may still be raised
DISPUTABLE_ASSIGNMENT_STATUSES = WORKING_ASSIGNMENT_STATUSES

FINALIZED_PAYMENT_STATUSES = ('RELEASED', 'REFUNDED')

RESOLUTION_OUTCOMES = {
    'RESOLVED_RELEASE': {'assignment': 'COMPLETED', 'payment': 'RELEASED'},
    'RESOLVED_REFUND': {'assignment': 'CANCELLED', 'payment': 'REFUNDED'},
}

ACTIVE_ASSIGNMENT_STATUSES = ('OPEN', 'ASSIGNED', 'IN_PROGRESS')

# Legacy system phrasings that must never show up in the chat view
SYSTEM_MESSAGE_PHRASES = (
    'bid received',
    'accepted the bid',
    'dispute raised',
    'completed the task',
    'submitted',
)

DEFAULT_ATTACHMENT_NAME = 'Attachment'
DEFAULT_ATTACHMENT_TYPE = 'application/octet-stream'

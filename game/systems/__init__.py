"""
Procurement systems package.

Only leaf systems are re-exported here; import the scheduler, gate and resolver
from their modules (they pull in entities, which import back into this package).
"""
from .economy import EconomySystem
from .notices import Notice, NoticeBoard, NoticeKind

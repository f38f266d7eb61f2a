"""
Secure Q-table protocol: key material, the encrypted table, Update/Select.
"""

from .keys import KeyMaterial
from .qtable import EncryptedQtable
from .secure import SecureQtableProtocol, broadcast, one_hot

__all__ = [
    "EncryptedQtable",
    "KeyMaterial",
    "SecureQtableProtocol",
    "broadcast",
    "one_hot",
]

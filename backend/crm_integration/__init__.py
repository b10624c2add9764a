"""
CRM Integration Module

Pushes account mailing-address changes to the CRM.
"""

from .crm_client import CRMClient, CRM_ADDRESS_FIELDS

__all__ = ['CRMClient', 'CRM_ADDRESS_FIELDS']

"""API Key Vault Meta information.
   API Key Vault stores provider API keys in a single encrypted file.
"""
__title__ = 'apikey_vault'
__description__ = (
   'API Key Vault stores provider API keys in a single '
   'master-password encrypted file.'
)
__version__ = '0.3.0'
__copyright__ = 'Copyright (c) 2024 API Key Vault Authors'
__author__ = 'API Key Vault Authors'
__license__ = 'Apache-2.0'

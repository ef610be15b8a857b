"""
Per-tenant feature flags
"""
import logging

from django.core.cache import cache

from .exceptions import ValidationFailed
from .workflow_models import FeatureFlag

logger = logging.getLogger(__name__)

FINANCE_WORKFLOW = 'FINANCE_WORKFLOW'

SYSTEM_FEATURES = [
    {'code': 'AI_CONTRACT_REVIEW', 'name': 'AI Contract Review', 'description': 'Enable AI-powered contract analysis and suggestions'},
    {'code': 'AI_CLAUSE_GENERATION', 'name': 'AI Clause Generation', 'description': 'Generate contract clauses using AI'},
    {'code': 'ADVANCED_ANALYTICS', 'name': 'Advanced Analytics', 'description': 'Enable advanced reporting and analytics dashboard'},
    {'code': 'E_SIGNATURE', 'name': 'E-Signature Integration', 'description': 'Enable electronic signature workflows'},
    {'code': 'MULTI_CURRENCY', 'name': 'Multi-Currency Support', 'description': 'Support multiple currencies in contracts'},
    {'code': 'CUSTOM_WORKFLOWS', 'name': 'Custom Workflows', 'description': 'Enable custom approval workflow builder'},
    {'code': 'OCR', 'name': 'OCR Processing', 'description': 'Enable OCR for uploaded documents'},
    {'code': FINANCE_WORKFLOW, 'name': 'Finance Review Workflow', 'description': 'Enable specific finance review workflow steps'},
]

FLAG_CACHE_TTL = 300


class FeatureFlagService:
    """
    Reads and toggles tenant feature flags.

    Lookups are cached per (tenant, code); updates drop the cached value.
    """

    @staticmethod
    def _cache_key(feature_code, tenant_id):
        return f"feature_flag:{tenant_id}:{feature_code}"

    @staticmethod
    def is_enabled(feature_code, tenant_id):
        if not tenant_id:
            return False

        key = FeatureFlagService._cache_key(feature_code, tenant_id)
        cached = cache.get(key)
        if cached is not None:
            return cached

        flag = FeatureFlag.objects.filter(tenant_id=tenant_id, feature_code=feature_code).first()
        enabled = bool(flag and flag.is_enabled)
        cache.set(key, enabled, FLAG_CACHE_TTL)
        return enabled

    @staticmethod
    def get_config(feature_code, tenant_id):
        flag = FeatureFlag.objects.filter(tenant_id=tenant_id, feature_code=feature_code).first()
        return (flag.config if flag else None) or {}

    @staticmethod
    def all_flags(tenant_id):
        """System catalog merged with the tenant's stored state."""
        stored = {
            flag.feature_code: flag
            for flag in FeatureFlag.objects.filter(tenant_id=tenant_id)
        }
        flags = []
        for feature in SYSTEM_FEATURES:
            flag = stored.get(feature['code'])
            flags.append({
                'code': feature['code'],
                'name': feature['name'],
                'description': feature['description'],
                'is_enabled': flag.is_enabled if flag else False,
                'config': flag.config if flag else None,
            })
        return flags

    @staticmethod
    def update_flag(tenant_id, feature_code, is_enabled, config=None):
        if not any(feature['code'] == feature_code for feature in SYSTEM_FEATURES):
            raise ValidationFailed(f"Invalid feature code: {feature_code}")

        defaults = {'is_enabled': bool(is_enabled)}
        if config is not None:
            defaults['config'] = config

        flag, _ = FeatureFlag.objects.update_or_create(
            tenant_id=tenant_id,
            feature_code=feature_code,
            defaults=defaults,
        )
        cache.delete(FeatureFlagService._cache_key(feature_code, tenant_id))
        logger.info(f"Feature {feature_code} set to {flag.is_enabled} for tenant {tenant_id}")
        return flag

    @staticmethod
    def available_features():
        return SYSTEM_FEATURES

import logging

log = logging.getLogger(__name__)


class EligibilityGate(object):
    """
    Decides whether a site needs any conversion aggregation at all. A site is
    eligible if it has ecommerce enabled or any configured goal.

    :param catalog:
        Object providing ``uses_ecommerce(site_id)`` and
        ``get_goal_ids(site_id)``.
    """
    def __init__(self, catalog):
        self.catalog = catalog

    def is_eligible(self, site_id):
        return bool(self.catalog.uses_ecommerce(site_id) or
                    self.catalog.get_goal_ids(site_id))

    def should_aggregate(self, site_id, site_ids=()):
        """
        Return True if ``site_id`` is eligible. A rollup site might have no
        goals or ecommerce of its own, so if it is not, check each of the
        constituent ``site_ids`` and return True on the first eligible one.
        """
        if self.is_eligible(site_id):
            return True

        for member_id in site_ids:
            if member_id == site_id:
                continue
            if self.is_eligible(member_id):
                log.debug('Site %s is eligible through member site %s.',
                          site_id, member_id)
                return True

        log.debug('Site %s has no goals or ecommerce, skipping.', site_id)
        return False

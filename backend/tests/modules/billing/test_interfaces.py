from modules.billing.interfaces import ISubscriptionUpdater
from modules.billing.service import SubscriptionUpdater


class TestBillingInterface:
    def test_interface_methods_exist(self):
        for method in ["submit", "apply", "sweep_grace_periods", "open_trial"]:
            assert hasattr(ISubscriptionUpdater, method)

    def test_updater_satisfies_protocol(self, store, audit, settings):
        updater = SubscriptionUpdater(store=store, audit=audit, settings=settings)
        assert isinstance(updater, ISubscriptionUpdater)

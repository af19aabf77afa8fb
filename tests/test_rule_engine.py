from config import BLOCK_PAGE_URL
from errors import StorageUnavailable
from group_store import Group, GroupStore, read_groups
from rule_engine import Installed, RequestInterceptor, RuleStateMachine, Uninstalled


class CountingInterceptor(RequestInterceptor):
    def __init__(self):
        super().__init__()
        self.installs = 0

    def install(self, patterns):
        self.installs += 1
        super().install(patterns)


class FakeSource:
    def __init__(self, groups=None):
        self.groups = groups or []
        self.error = None

    def __call__(self):
        if self.error is not None:
            raise self.error
        return self.groups


class TestRuleStateMachine:
    def setup_method(self):
        self.source = FakeSource()
        self.interceptor = CountingInterceptor()
        self.machine = RuleStateMachine(self.source, self.interceptor)

    def test_starts_uninstalled(self):
        assert self.machine.state == Uninstalled()
        assert self.machine.on_event() == Uninstalled()
        assert self.interceptor.installed is False

    def test_installs_for_active_group(self):
        self.source.groups = [Group("Work", ["x.com"])]
        state = self.machine.on_event()
        assert state == Installed(frozenset({"*://x.com/*", "*://*.x.com/*"}))
        assert self.interceptor.patterns == state.patterns

    def test_same_patterns_not_reinstalled(self):
        self.source.groups = [Group("Work", ["x.com"])]
        self.machine.on_event()
        self.source.groups = [Group("Work", ["x.com"]), Group("Play", ["x.com"])]
        self.machine.on_event()
        assert self.interceptor.installs == 1

    def test_changed_patterns_reinstalled(self):
        self.source.groups = [Group("Work", ["x.com"])]
        self.machine.on_event()
        self.source.groups = [Group("Work", ["x.com", "y.com"])]
        self.machine.on_event()
        assert self.interceptor.installs == 2
        assert "*://y.com/*" in self.interceptor.patterns

    def test_deactivating_uninstalls(self):
        self.source.groups = [Group("Work", ["x.com"])]
        self.machine.on_event()
        self.source.groups = [Group("Work", ["x.com"], active=False)]
        assert self.machine.on_event() == Uninstalled()
        assert self.interceptor.installed is False
        assert self.interceptor.intercept("https://x.com/") is None

    def test_active_group_without_websites(self):
        self.source.groups = [Group("Work")]
        assert self.machine.on_event() == Uninstalled()
        assert self.interceptor.installs == 0

    def test_read_failure_keeps_rules(self):
        self.source.groups = [Group("Work", ["x.com"])]
        installed = self.machine.on_event()

        self.source.error = StorageUnavailable("corrupted")
        assert self.machine.on_event() == installed
        assert self.interceptor.intercept("https://x.com/") == BLOCK_PAGE_URL

        self.source.error = ValueError("malformed")
        assert self.machine.on_event() == installed

    def test_handle_change_filters_notifications(self):
        self.source.groups = [Group("Work", ["x.com"])]
        self.machine.handle_change("theme", None, "dark")
        self.machine.handle_change("groups", [1], [1])
        assert self.machine.state == Uninstalled()

        self.machine.handle_change("groups", None, [1])
        assert isinstance(self.machine.state, Installed)


class TestRequestInterceptor:
    def test_nothing_installed(self):
        interceptor = RequestInterceptor()
        assert interceptor.intercept("https://reddit.com/") is None
        assert interceptor.blocks_host("reddit.com") is False
        assert interceptor.patterns == frozenset()

    def test_custom_redirect(self):
        interceptor = RequestInterceptor(redirect_url="http://127.0.0.1:8080/blocked")
        interceptor.install(frozenset({"*://x.com/*"}))
        assert interceptor.intercept("https://x.com/") == "http://127.0.0.1:8080/blocked"

    def test_uninstall_twice(self):
        interceptor = RequestInterceptor()
        interceptor.install(frozenset({"*://x.com/*"}))
        interceptor.uninstall()
        interceptor.uninstall()
        assert interceptor.installed is False


class TestEndToEnd:
    def test_focus_group_redirects_reddit(self, store):
        groups = GroupStore(store)
        interceptor = RequestInterceptor()
        machine = RuleStateMachine(lambda: read_groups(store), interceptor)
        store.add_listener(machine.handle_change)
        machine.on_event()

        groups.add_group("Focus")
        groups.add_website("Focus", "reddit.com")

        assert "*://*.reddit.com/*" in interceptor.patterns
        assert interceptor.intercept("https://old.reddit.com/r/x") == BLOCK_PAGE_URL
        assert interceptor.intercept("https://example.com") is None

        groups.toggle_active("Focus")
        assert machine.state == Uninstalled()
        assert interceptor.intercept("https://old.reddit.com/r/x") is None

    def test_corrupted_store_keeps_enforcing(self, store, store_path):
        writer = GroupStore(store)
        writer.add_group("Focus")
        writer.add_website("Focus", "reddit.com")

        interceptor = RequestInterceptor()
        machine = RuleStateMachine(lambda: read_groups(store), interceptor)
        machine.on_event()

        store_path.write_text("{corrupt")
        machine.on_event()
        assert interceptor.intercept("https://reddit.com/") == BLOCK_PAGE_URL

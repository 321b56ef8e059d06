import threading

from vuesync.utils.atom import Atom


def test_reset_returns_previous_value():
    atom = Atom(1)

    assert atom.reset(2) == 1
    assert atom.load() == 2


def test_watchers_see_old_and_new():
    atom = Atom("a")
    seen = []
    atom.watch(lambda old, new: seen.append((old, new)))
    atom.watch(lambda old, new: seen.append(("second", new)))

    atom.reset("b")
    atom.reset("c")

    assert seen == [("a", "b"), ("second", "b"), ("b", "c"), ("second", "c")]


def test_watcher_can_load_without_deadlock():
    atom = Atom(0)
    loaded = []
    atom.watch(lambda old, new: loaded.append(atom.load()))

    atom.reset(5)

    assert loaded == [5]


def test_concurrent_resets_notify_in_order():
    atom = Atom(0)
    transitions = []
    atom.watch(lambda old, new: transitions.append((old, new)))

    def writer(start):
        for i in range(start, start + 200):
            atom.reset(i)

    threads = [threading.Thread(target=writer, args=(n * 1000,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(transitions) == 800
    # Every notification continues from the value the previous one installed.
    for (_, prev_new), (next_old, _) in zip(transitions, transitions[1:]):
        assert next_old == prev_new
    assert transitions[-1][1] == atom.load()

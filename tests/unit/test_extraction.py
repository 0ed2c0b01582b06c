"""Unit tests for git extraction."""

from datetime import date, timedelta
from pathlib import Path

import pytest

from anchorman.errors import WorkingCopyError
from anchorman.extraction import GitExtractor


def test_git_extractor_initialization(make_repo):
    """Test opening a working copy from a subdirectory."""
    repo = make_repo(commits=1)
    subdir = Path(repo.working_tree_dir) / "nested"
    subdir.mkdir()

    extractor = GitExtractor(subdir)

    assert str(extractor.repo_root) == repo.working_tree_dir


def test_git_extractor_not_a_repository(tmp_path):
    """Test GitExtractor outside any working copy."""
    with pytest.raises(WorkingCopyError, match="Not a git repository"):
        GitExtractor(tmp_path)


def test_git_extractor_missing_path(tmp_path):
    with pytest.raises(WorkingCopyError):
        GitExtractor(tmp_path / "does-not-exist")


def test_current_commit(make_repo, base_time):
    """Test extracting HEAD metadata."""
    repo = make_repo(commits=2)
    extractor = GitExtractor(repo.working_tree_dir)

    info = extractor.current_commit()

    assert info.hash == repo.head.commit.hexsha
    assert info.message == "C2"
    assert info.author == "Test User <test@example.com>"
    assert info.branch == repo.active_branch.name
    assert info.files_changed == ["file2.txt"]
    assert info.committed_at == base_time + timedelta(days=1)
    assert info.short_hash == info.hash[:8]


def test_current_commit_empty_repository(make_repo):
    repo = make_repo(commits=0)

    with pytest.raises(WorkingCopyError, match="No commits"):
        GitExtractor(repo.working_tree_dir).current_commit()


def test_initial_commit_lists_its_files(make_repo):
    repo = make_repo(commits=1)

    info = GitExtractor(repo.working_tree_dir).current_commit()

    assert info.files_changed == ["file1.txt"]


def test_commit_history_oldest_first(make_repo):
    """Test that history is returned oldest to newest."""
    repo = make_repo(commits=5)

    history = GitExtractor(repo.working_tree_dir).commit_history()

    assert [c.message for c in history] == ["C1", "C2", "C3", "C4", "C5"]
    assert all(c.branch == repo.active_branch.name for c in history)


def test_commit_history_with_count(make_repo):
    """Test keeping only the most recent commits."""
    repo = make_repo(commits=5)

    history = GitExtractor(repo.working_tree_dir).commit_history(count=3)

    assert [c.message for c in history] == ["C3", "C4", "C5"]


def test_commit_history_zero_count_means_all(make_repo):
    repo = make_repo(commits=4)

    assert len(GitExtractor(repo.working_tree_dir).commit_history(count=0)) == 4


def test_commit_history_since(make_repo):
    """Test filtering by start date."""
    repo = make_repo(commits=5, step=timedelta(days=3))
    # Commits on Jan 1, 4, 7, 10 and 13
    history = GitExtractor(repo.working_tree_dir).commit_history(since=date(2024, 1, 7))

    assert [c.message for c in history] == ["C3", "C4", "C5"]


def test_commit_history_branch(make_repo, add_commit, base_time):
    """Test restricting history to one branch."""
    repo = make_repo(commits=2)
    main = repo.active_branch
    feature = repo.create_head("feature")
    feature.checkout()
    add_commit(repo, "feature.txt", "x\n", "Feature work", base_time + timedelta(days=5))
    main.checkout()
    add_commit(repo, "main.txt", "y\n", "Main work", base_time + timedelta(days=6))

    extractor = GitExtractor(repo.working_tree_dir)
    on_main = extractor.commit_history(branch=main.name)
    on_feature = extractor.commit_history(branch="feature")
    everything = extractor.commit_history()

    assert [c.message for c in on_main] == ["C1", "C2", "Main work"]
    assert [c.message for c in on_feature] == ["C1", "C2", "Feature work"]
    assert on_feature[-1].branch == "feature"
    assert on_main[-1].branch == main.name
    assert len(everything) == 4
    assert {c.message: c.branch for c in everything}["Feature work"] == "feature"


def test_commit_history_labels_first_containing_branch(make_repo):
    """Shared commits keep the first containing branch, whichever branch is walked."""
    repo = make_repo(commits=1)
    main = repo.active_branch
    repo.create_head("alpha")

    extractor = GitExtractor(repo.working_tree_dir)
    on_main = extractor.commit_history(branch=main.name)
    on_alpha = extractor.commit_history(branch="alpha")

    assert on_main[0].branch == "alpha"
    assert on_alpha[0].branch == "alpha"


def test_commit_history_unknown_branch(make_repo):
    repo = make_repo(commits=1)

    with pytest.raises(WorkingCopyError):
        GitExtractor(repo.working_tree_dir).commit_history(branch="no-such-branch")


def test_commit_history_empty_repository(make_repo):
    repo = make_repo(commits=0)

    assert GitExtractor(repo.working_tree_dir).commit_history() == []

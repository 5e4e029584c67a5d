"""Tests for dashboard display data."""

from src.workflow.presentation import asset_list, audio_button, render, script_link_list, status_badges
from src.workflow.reconciler import POLL, StatusReconciler


def view_of(**fields):
    reconciler = StatusReconciler("Ep-100")
    reconciler.apply_row(fields, POLL)
    return reconciler.view()


class TestStatusBadges:
    """Tests for status badges."""

    def test_unstarted_stages(self):
        badges = status_badges(view_of())

        assert badges["script"]["label"] == "Pending"
        assert badges["text_files"]["label"] == "Not started"
        assert badges["podcast"]["tone"] == "muted"

    def test_ready_to_publish(self):
        badge = status_badges(view_of(podcast_status="Ready to Publish"))["podcast"]

        assert badge["label"] == "Ready to Publish"
        assert badge["description"] == "Podcast is ready to be published to Podbean."


class TestLinkLists:
    """Tests for the link listings."""

    def test_script_links_in_order(self):
        items = script_link_list(view_of(episode_interview_script_2="https://s2"))

        assert [i["label"] for i in items][:2] == ["Script #1", "Script #2"]
        assert items[0]["available"] is False
        assert items[1]["url"] == "https://s2"

    def test_blank_links_are_unavailable(self):
        items = script_link_list(view_of(episode_interview_script_1="   "))

        assert items[0]["url"] is None

    def test_audio_assets_are_view_only(self):
        actions = {i["key"]: i["action"] for i in asset_list(view_of())}

        assert actions["master_audio"] == "View Only"
        assert actions["intro_audio"] == "View Only"
        assert actions["show_notes"] == "View or Update"


class TestAudioButton:
    """Tests for the approve / generate audio button."""

    def test_enabled_when_approvable(self):
        button = audio_button(view_of(
            episode_interview_script_1="https://s1",
            episode_interview_script_4="https://s4",
        ))

        assert button == {
            "label": "Generate Audio",
            "title": "Generate audio for this episode",
            "enabled": True,
        }

    def test_slot4_missing(self):
        button = audio_button(view_of(episode_interview_script_1="https://s1"))

        assert button["label"] == "Script #4 Required"
        assert button["title"] == "Script #4 - Summary is required for approval"
        assert button["enabled"] is False

    def test_in_progress_after_approval(self):
        button = audio_button(view_of(
            episode_interview_script_4="https://s4",
            episode_interview_script_status="Approved",
        ))

        assert button["label"] == "Audio Generation In Progress"
        assert button["enabled"] is False


def test_render_includes_view_and_display_data():
    payload = render(view_of(episode_interview_script_1="https://s1"))

    assert payload["episode_name"] == "Ep-100"
    assert payload["processing_banner"]
    assert {"badges", "scripts", "text_files", "assets", "audio_button"} <= set(payload)

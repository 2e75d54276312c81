"""Create a demo story for development/testing."""

import shutil

from backend import sessions, storage
from novel_player import builder
from novel_player.models import Story


def demo_story() -> Story:
    """A two-scene story touching every node type."""
    return builder.story(
        "Rainy Day Cafe",
        author="Novel Player",
        version="1.0.0",
        start_scene_id="cafe",
        variables={"score": 0, "visited_counter": False},
        settings={"askForName": True, "defaultPlayerName": "Player", "scoreVariable": "score"},
        characters=[
            builder.character(
                "mira", "Mira",
                {"neutral": "/characters/mira-neutral.png", "happy": "/characters/mira-happy.png",
                 "sad": "/characters/mira-sad.png"},
                name_color="#4169E1",
            ),
        ],
        backgrounds=[
            builder.background("cafe", "Cafe", "/backgrounds/cafe.jpg"),
            builder.background("street", "Rainy Street", "/backgrounds/street.jpg"),
        ],
        scenes=[
            builder.scene("cafe", "arrive", name="The Cafe", nodes=[
                builder.narration(
                    "arrive", "Rain drums on the window as you step inside.", "greet",
                    background="cafe", transition="fade", speaker_name="Narrator",
                    audio={"type": "bgm", "src": "/audio/cafe.mp3"},
                ),
                builder.dialogue(
                    "greet", "mira", "Oh, {userName}! Over here!", "order",
                    visible_characters=[{"character_id": "mira", "expression": "happy", "position": "center"}],
                ),
                builder.choice("order", "What do you order?", [
                    {"id": "tea", "text": "Tea, please.", "next_node_id": "favorite",
                     "add_variables": {"score": 5}},
                    {"id": "nothing", "text": "Nothing for me.", "next_node_id": "favorite"},
                    {"id": "usual", "text": "The usual.", "next_node_id": "favorite",
                     "condition": {"variable": "visited_counter", "operator": "==", "value": True}},
                ]),
                builder.text_input(
                    "favorite", "What's your favorite drink?", "favorite_drink", "talk",
                    min_length=2, max_length=40,
                ),
                builder.llm_input(
                    "talk", "Mira looks tired. Say something to her.", "street/outside",
                    user_input_variable="player_words",
                    character_response_variable="mira_reply",
                    emotion_variable="mira_emotion",
                    evaluation_variable="mira_eval",
                    context="You are Mira, a tired student. {userName} likes {favorite_drink}.",
                    rating_config={"variable_to_modify": "score", "good_points": 20,
                                   "neutral_points": 0, "bad_points": -20},
                ),
            ]),
            builder.scene("street", "outside", name="The Street", nodes=[
                builder.dialogue(
                    "outside", "mira", "{mira_reply}", "bye",
                    background="street",
                    visible_characters=[{"character_id": "mira", "expression": "{mira_emotion}",
                                         "position": "center"}],
                ),
                builder.end("bye", "You part ways. Score: {score}"),
            ]),
        ],
    )


def create_demo_data() -> None:
    """Wipe stories, playthroughs and saves, then store the demo story."""
    for path in (storage.stories_dir(), storage.playthroughs_dir(), storage.saves_dir()):
        if path.exists():
            shutil.rmtree(path)
        path.mkdir(parents=True, exist_ok=True)
    sessions.reset_sessions()

    story = demo_story()
    storage.save_story(story.model_dump(by_alias=True, exclude_none=True))

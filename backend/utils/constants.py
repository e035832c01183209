XP_BOOST_POWER_UP = "xp_boost"
XP_BOOST_MULTIPLIER = 2

DAILY_CHALLENGE_DEFAULTS = {
    "fallback_coins": 20,
    "fallback_xp": 100,
    "dynamic_coins": 50,
    "dynamic_xp": 100,
}

DEFAULT_SHOP_ITEMS = [
    # Power-Ups
    {"item_id": "power-5050", "name": "50/50", "description": "Remove two wrong options",
     "type": "power-up", "price": 50, "payload": {"power_up_type": "5050", "uses": 1}},
    {"item_id": "power-time", "name": "Time Freeze", "description": "Freeze time for 30s",
     "type": "power-up", "price": 60, "payload": {"power_up_type": "time_freeze", "uses": 1}},
    {"item_id": "power-skip", "name": "Question Skip", "description": "Skip a hard question",
     "type": "power-up", "price": 100, "payload": {"power_up_type": "skip", "uses": 1}},
    {"item_id": "power-shield", "name": "Streak Shield", "description": "Protect your streak once",
     "type": "power-up", "price": 150, "payload": {"power_up_type": "shield", "uses": 1}},
    {"item_id": "power-hint", "name": "Smart Hint", "description": "Get a helpful hint",
     "type": "power-up", "price": 75, "payload": {"power_up_type": "hint", "uses": 1}},

    # Boosts
    {"item_id": "boost-xp", "name": "XP Boost", "description": "2x XP for next quiz",
     "type": "boost", "price": 120, "payload": {"power_up_type": XP_BOOST_POWER_UP, "uses": 1,
                                                "multiplier": XP_BOOST_MULTIPLIER}},

    # Cosmetics
    {"item_id": "style-glasses", "name": "Cool Glasses", "description": "Look smart while quizzing",
     "type": "cosmetic", "price": 200, "payload": {"cosmetic_type": "accessory", "value": "glasses"}},
    {"item_id": "style-crown", "name": "Golden Crown", "description": "For the quiz royalty",
     "type": "cosmetic", "price": 1000, "payload": {"cosmetic_type": "hat", "value": "crown"}},
    {"item_id": "style-wizard", "name": "Wizard Hat", "description": "Magical knowledge inside",
     "type": "cosmetic", "price": 500, "payload": {"cosmetic_type": "hat", "value": "wizard_hat"}},
    {"item_id": "style-galaxy", "name": "Galaxy Theme", "description": "Space explorer vibes",
     "type": "cosmetic", "price": 800, "payload": {"cosmetic_type": "theme", "value": "galaxy"}},
]

DEFAULT_BADGES = [
    {"key": "first_quiz", "name": "First Steps", "description": "Complete your first quiz.",
     "icon": "🎯", "criteria_type": "total_attempts", "threshold": 1},
    {"key": "quiz_veteran", "name": "Quiz Veteran", "description": "Complete 25 quizzes.",
     "icon": "🎖️", "criteria_type": "total_attempts", "threshold": 25, "reward_coins": 100},
    {"key": "perfectionist", "name": "Perfectionist", "description": "Score 100% on a quiz.",
     "icon": "💯", "criteria_type": "perfect_score", "threshold": 1, "reward_xp": 50},
    {"key": "speed_demon", "name": "Speed Demon", "description": "Finish a quiz in under 60 seconds.",
     "icon": "⚡", "criteria_type": "speed_demon", "threshold": 60, "reward_xp": 100, "reward_coins": 50},
    {"key": "week_streak", "name": "Weekly Warrior", "description": "Log in 7 days in a row.",
     "icon": "🔥", "criteria_type": "streak", "threshold": 7},
    {"key": "level_5", "name": "Rising Star", "description": "Reach level 5.",
     "icon": "⭐", "criteria_type": "level", "threshold": 5},
    {"key": "score_1000", "name": "Point Collector", "description": "Earn 1000 total points.",
     "icon": "💰", "criteria_type": "total_score", "threshold": 1000},
    {"key": "pathfinder", "name": "Pathfinder", "description": "Complete a skill track.",
     "icon": "🗺️", "criteria_type": "track_completion", "threshold": 1, "reward_xp": 200},
    {"key": "social_butterfly", "name": "Social Butterfly", "description": "Make 5 friends.",
     "icon": "🦋", "criteria_type": "friend_count", "threshold": 5},
]

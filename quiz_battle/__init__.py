"""
Quiz Battle - two-team trivia game hosted as a Discord bot.
"""

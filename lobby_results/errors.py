"""
Error taxonomy for table parsing, rating calculation and match resolution.

Every failure is terminal for the current request. The exception message
carries the specific cause, `user_message` the explanation shown to whoever
posted the table.
"""


class ResultsError(Exception):
    """Base exception for lobby results errors"""
    user_message = "Couldn't calculate lobby results."


class ParseError(ResultsError):
    """The table text could not be turned into a match"""
    user_message = "Couldn't calculate lobby results.\nPlease provide a valid table template."


class ValidationError(ResultsError):
    """Not enough players/opponents, or the rating scheme is missing parameters"""
    user_message = "Couldn't calculate lobby results.\nThe lobby or the board rating settings are not valid."


class RemoteUnavailable(ResultsError):
    """The leaderboard could not be reached, timed out or answered with an error"""
    user_message = "Couldn't calculate lobby results.\nThe leaderboard is down. Try later."


class ResolutionNotFound(ResultsError):
    """No match to predict, or a submitted match could not be looked up"""
    user_message = (
        "Couldn't calculate lobby results.\n"
        "\nCheck if the submitted lobby number exists.\n"
        "You can view a maximum of 100 previously submitted lobbies."
    )


class CalculationError(ResultsError):
    """The rating computation was aborted"""
    user_message = "Couldn't calculate lobby results.\nUnable to calculate the match scores."

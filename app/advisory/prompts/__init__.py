"""Static assistant wording: fixed replies, canned questions and templates."""

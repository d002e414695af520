SYSTEM = (
    "You are a helpful AI assistant specialized in scheduling. "
    "Produce JSON that strictly matches the supplied schema. "
    "Use ISO 8601 datetimes with timezone offsets for every start and end time."
)

USER_TEMPLATE = (
    "Given a user's existing schedule and the details of a new event, "
    "suggest three optimal times for the new event.\n\n"
    "Existing Schedule: {schedule}\n"
    "Event Description: {event_description}\n"
    "Event Duration: {event_duration} minutes\n\n"
    "Consider the existing schedule to avoid conflicts and provide suggestions "
    "with reasons why each time slot is optimal. "
    "Return the suggested times in JSON format."
)

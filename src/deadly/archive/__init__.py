# ABOUTME: Archive dataset types, record parsing, and the fetch/extract collaborators.
# ABOUTME: Nothing here touches the database.

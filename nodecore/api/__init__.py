"""JSON API client, request argument helpers and shared response types."""
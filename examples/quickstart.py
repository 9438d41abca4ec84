"""policygate quickstart: apply a tool policy to a saved result, no servers needed."""

from policygate import PolicyEngine

engine = PolicyEngine([
    {
        "toolName": "search",
        "paramsFilter": {"visibility": "public"},
        "responseFilter": {
            "jsonPath": "$.items[*].body",
            "contains": ["urgent"],
            "convertResults": "htmlToText",
        },
    }
])

arguments = engine.apply_input_policy("search", {"query": "renewals", "visibility": "private"})
print(f"Forwarded arguments: {arguments}")

result = {
    "items": [
        {"body": "<style>p{}</style><p><b>Urgent:</b> renew the certificate</p>"},
        {"body": "<p>Weekly newsletter</p>"},
    ]
}
for item in engine.apply_response_policy("search", result):
    print(item.to_wire())

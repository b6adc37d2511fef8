"""Basic example: score a Face++ detect response without calling the API.

Run with ``python examples/basic_example.py``.
"""

from skinmaxx.scoring import RawDetectionAttributes, score_attributes

# One entry of the ``faces`` list of a /facepp/v3/detect response
FACE = {
    "face_token": "example",
    "attributes": {
        "age": {"value": 28},
        "emotion": {"happiness": 90.0, "neutral": 8.5},
        "beauty": {"female_score": 85.0, "male_score": 80.0},
        "skinstatus": {
            "health": 90.0,
            "pore": 20.0,
            "oily": 30.0,
            "moisture": 70.0,
            "stain": 5.0,
            "dark_circle": 10.0,
            "acne": 5.0,
            "wrinkle": 10.0,
        },
    },
}


def main() -> None:
    """Run the basic example."""
    print("=" * 60)
    print("skinmaxx - Basic Example")
    print("=" * 60)

    raw = RawDetectionAttributes.from_face(FACE)
    result = score_attributes(raw)

    print(f"\nScore:      {result.score}")
    print(f"Skin type:  {result.skin_type.value}")
    print(f"Skin age:   {result.skin_age}")
    print(f"Radiance:   {result.radiance_score} (bonus: {result.has_radiance_bonus})")

    for name, record in result.categories.__dict__.items():
        print(f"\n{name}:")
        for metric, value in record.to_wire().items():
            print(f"   {metric:20} {value}")

    print("\n" + "=" * 60)


if __name__ == "__main__":
    main()

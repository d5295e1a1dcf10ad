"""TwiML rendering of call instructions."""
from typing import Iterable
from twilio.twiml.voice_response import Gather, VoiceResponse

from receptionist.services.call_session.instructions import (
    Dial,
    GatherSpeech,
    Hangup,
    Instruction,
    Record,
    Speak,
)

VOICE = "Polly.Joanna-Neural"
LANGUAGE = "en-US"


class TwimlRenderer:
    """Converts controller instructions into a TwiML document for Twilio."""

    def __init__(self, no_speech_prompt: str = "I didn't catch that. Please try again."):
        self.no_speech_prompt = no_speech_prompt

    def render(
        self,
        instructions: Iterable[Instruction],
        gather_url: str,
        recording_url: str,
    ) -> str:
        """
        Generate TwiML for a list of instructions.

        Args:
            instructions: Controller output, in order
            gather_url: Where Twilio posts gathered speech
            recording_url: Where Twilio posts the finished recording

        Returns:
            TwiML XML string
        """
        response = VoiceResponse()
        for instruction in instructions:
            if isinstance(instruction, Speak):
                response.say(instruction.text, voice=VOICE, language=LANGUAGE)
            elif isinstance(instruction, GatherSpeech):
                self._add_gather(response, instruction, gather_url)
            elif isinstance(instruction, Dial):
                response.dial(instruction.number)
            elif isinstance(instruction, Record):
                response.record(
                    max_length=instruction.max_length_seconds,
                    action=recording_url,
                    method="POST",
                )
            elif isinstance(instruction, Hangup):
                response.hangup()
            else:
                raise TypeError(f"Unknown instruction: {instruction!r}")
        return str(response)

    def _add_gather(self, response: VoiceResponse, instruction: GatherSpeech, gather_url: str) -> None:
        gather = Gather(
            input="speech",
            action=gather_url,
            method="POST",
            speech_timeout="auto",
            timeout=5,
            language=LANGUAGE,
        )
        gather.say(instruction.prompt, voice=VOICE, language=LANGUAGE)
        if instruction.follow_up:
            gather.say(instruction.follow_up, voice=VOICE, language=LANGUAGE)
        response.append(gather)
        # Silence falls through the gather: re-prompt and post back empty speech
        response.say(self.no_speech_prompt, voice=VOICE, language=LANGUAGE)
        response.redirect(gather_url, method="POST")
